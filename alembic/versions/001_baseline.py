"""Baseline schema: users, topics, practice logs, progress, badges, points,
daily challenges, leaderboard snapshots and recommendations.

Revision ID: 001_baseline
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            email VARCHAR(320) UNIQUE NOT NULL,
            full_name VARCHAR(128) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_gamification (
            user_id BIGINT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            total_points INTEGER NOT NULL DEFAULT 0,
            current_streak INTEGER NOT NULL DEFAULT 0,
            longest_streak INTEGER NOT NULL DEFAULT 0,
            last_practice_date DATE,
            level INTEGER NOT NULL DEFAULT 1,
            badges_earned INTEGER NOT NULL DEFAULT 0,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_user_gamification_points CHECK (total_points >= 0),
            CONSTRAINT ck_user_gamification_streak CHECK (current_streak >= 0)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_gamification_points
        ON user_gamification(total_points)
    """)

    # --- Topics & practice logs ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS topics (
            id BIGSERIAL PRIMARY KEY,
            name VARCHAR(128) UNIQUE NOT NULL,
            category VARCHAR(32) NOT NULL,
            difficulty VARCHAR(16) NOT NULL,
            recommended_questions INTEGER NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_topics_category ON topics(category)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS practice_logs (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            topic_id BIGINT NOT NULL REFERENCES topics(id) ON DELETE CASCADE,
            question_title VARCHAR(200) NOT NULL,
            question_url VARCHAR(2048),
            difficulty VARCHAR(8) NOT NULL,
            time_spent_minutes INTEGER NOT NULL,
            solved BOOLEAN NOT NULL,
            notes VARCHAR(500),
            practiced_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_practice_logs_minutes CHECK (time_spent_minutes BETWEEN 1 AND 300)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_practice_logs_user_topic
        ON practice_logs(user_id, topic_id, practiced_at)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_practice_logs_practiced_at
        ON practice_logs(practiced_at)
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS topic_progress (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            topic_id BIGINT NOT NULL REFERENCES topics(id) ON DELETE CASCADE,
            total_questions_attempted INTEGER NOT NULL DEFAULT 0,
            questions_solved INTEGER NOT NULL DEFAULT 0,
            accuracy_percentage INTEGER NOT NULL DEFAULT 0,
            total_time_minutes INTEGER NOT NULL DEFAULT 0,
            avg_time_per_question INTEGER NOT NULL DEFAULT 0,
            recommended_questions INTEGER NOT NULL DEFAULT 0,
            completion_percentage INTEGER NOT NULL DEFAULT 0,
            strength_score INTEGER NOT NULL DEFAULT 0,
            consistency_score INTEGER NOT NULL DEFAULT 0,
            difficulty_breakdown JSONB NOT NULL DEFAULT '{}',
            last_practiced_at TIMESTAMPTZ,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT topic_progress_user_topic_key UNIQUE (user_id, topic_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_topic_progress_topic_strength
        ON topic_progress(topic_id, strength_score)
    """)

    # --- Badges & points ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS badge_definitions (
            id BIGSERIAL PRIMARY KEY,
            slug VARCHAR(64) UNIQUE NOT NULL,
            name VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            category VARCHAR(32) NOT NULL,
            criteria_type VARCHAR(32) NOT NULL,
            criteria_value INTEGER NOT NULL,
            criteria_topic_id BIGINT,
            icon_url VARCHAR(256) NOT NULL DEFAULT '/badges/default.png',
            rarity VARCHAR(16) NOT NULL DEFAULT 'common',
            points INTEGER NOT NULL DEFAULT 10,
            sort_order INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_badges (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            badge_id BIGINT NOT NULL REFERENCES badge_definitions(id) ON DELETE CASCADE,
            earned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            progress INTEGER NOT NULL DEFAULT 100,
            CONSTRAINT user_badges_user_id_badge_id_key UNIQUE (user_id, badge_id)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS points_ledger (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            amount INTEGER NOT NULL,
            source VARCHAR(32) NOT NULL,
            source_id VARCHAR(128),
            description VARCHAR(256),
            idempotency_key VARCHAR(128) UNIQUE NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_points_ledger_user_id ON points_ledger(user_id)")

    # --- Daily challenges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS daily_challenges (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            challenge_date DATE NOT NULL,
            overall_completed BOOLEAN NOT NULL DEFAULT false,
            completed_at TIMESTAMPTZ,
            reward_points INTEGER NOT NULL DEFAULT 50,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT daily_challenges_user_date_key UNIQUE (user_id, challenge_date)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_daily_challenges_date
        ON daily_challenges(challenge_date)
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS daily_challenge_tasks (
            id BIGSERIAL PRIMARY KEY,
            challenge_id BIGINT NOT NULL REFERENCES daily_challenges(id) ON DELETE CASCADE,
            position INTEGER NOT NULL,
            topic_id BIGINT NOT NULL,
            topic_name VARCHAR(128),
            difficulty VARCHAR(8) NOT NULL,
            target_questions INTEGER NOT NULL DEFAULT 3,
            questions_completed INTEGER NOT NULL DEFAULT 0,
            completed BOOLEAN NOT NULL DEFAULT false,
            CONSTRAINT daily_challenge_tasks_position_key UNIQUE (challenge_id, position)
        )
    """)

    # --- Caches ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS leaderboard_snapshots (
            id BIGSERIAL PRIMARY KEY,
            scope_key VARCHAR(64) UNIQUE NOT NULL,
            scope VARCHAR(16) NOT NULL,
            topic_id BIGINT,
            rankings JSONB NOT NULL DEFAULT '[]',
            last_updated TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            expires_at TIMESTAMPTZ NOT NULL
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_leaderboard_snapshots_expires_at
        ON leaderboard_snapshots(expires_at)
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS recommendations (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            recommended_topics JSONB NOT NULL DEFAULT '[]',
            study_plan JSONB NOT NULL DEFAULT '[]',
            weak_area_focus JSONB NOT NULL DEFAULT '[]',
            practice_patterns JSONB NOT NULL DEFAULT '{}',
            confidence_score INTEGER NOT NULL DEFAULT 50,
            generated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            expires_at TIMESTAMPTZ NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT true
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_recommendations_user_active
        ON recommendations(user_id, is_active, expires_at)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS recommendations CASCADE")
    op.execute("DROP TABLE IF EXISTS leaderboard_snapshots CASCADE")
    op.execute("DROP TABLE IF EXISTS daily_challenge_tasks CASCADE")
    op.execute("DROP TABLE IF EXISTS daily_challenges CASCADE")
    op.execute("DROP TABLE IF EXISTS points_ledger CASCADE")
    op.execute("DROP TABLE IF EXISTS user_badges CASCADE")
    op.execute("DROP TABLE IF EXISTS badge_definitions CASCADE")
    op.execute("DROP TABLE IF EXISTS topic_progress CASCADE")
    op.execute("DROP TABLE IF EXISTS practice_logs CASCADE")
    op.execute("DROP TABLE IF EXISTS topics CASCADE")
    op.execute("DROP TABLE IF EXISTS user_gamification CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
