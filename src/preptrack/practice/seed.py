"""Topic seed data: the 15 default practice topics."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.db.base import dialect_insert
from preptrack.db.models import Topic

logger = logging.getLogger(__name__)

TOPIC_SEED_DATA: list[dict] = [
    # DSA
    {
        "name": "Arrays",
        "category": "DSA",
        "difficulty": "Beginner",
        "recommended_questions": 50,
        "description": "Master array manipulation, searching, sorting, and common patterns like two pointers and sliding window.",
    },
    {
        "name": "Strings",
        "category": "DSA",
        "difficulty": "Beginner",
        "recommended_questions": 40,
        "description": "Learn string manipulation, pattern matching, and common algorithms like KMP and Rabin-Karp.",
    },
    {
        "name": "Linked Lists",
        "category": "DSA",
        "difficulty": "Intermediate",
        "recommended_questions": 30,
        "description": "Understand singly and doubly linked lists, reversal, cycle detection, and merge operations.",
    },
    {
        "name": "Stacks & Queues",
        "category": "DSA",
        "difficulty": "Intermediate",
        "recommended_questions": 25,
        "description": "Implement stacks and queues, solve problems using monotonic stacks and deques.",
    },
    {
        "name": "Trees",
        "category": "DSA",
        "difficulty": "Intermediate",
        "recommended_questions": 35,
        "description": "Binary trees, BST, tree traversals, LCA, and common tree patterns.",
    },
    {
        "name": "Graphs",
        "category": "DSA",
        "difficulty": "Advanced",
        "recommended_questions": 30,
        "description": "Graph representations, BFS, DFS, shortest paths, MST, and topological sorting.",
    },
    {
        "name": "Dynamic Programming",
        "category": "DSA",
        "difficulty": "Advanced",
        "recommended_questions": 40,
        "description": "Master DP patterns: 1D/2D DP, knapsack, LIS, LCS, and state machine DP.",
    },
    {
        "name": "Greedy Algorithms",
        "category": "DSA",
        "difficulty": "Advanced",
        "recommended_questions": 25,
        "description": "Learn greedy choice property, activity selection, and interval scheduling.",
    },
    {
        "name": "Hashing",
        "category": "DSA",
        "difficulty": "Beginner",
        "recommended_questions": 20,
        "description": "Hash maps, hash sets, and solving problems with O(1) lookups.",
    },
    {
        "name": "Recursion & Backtracking",
        "category": "DSA",
        "difficulty": "Intermediate",
        "recommended_questions": 30,
        "description": "Recursive thinking, backtracking patterns, and pruning techniques.",
    },
    # System Design
    {
        "name": "Low-Level Design",
        "category": "System Design",
        "difficulty": "Intermediate",
        "recommended_questions": 10,
        "description": "Object-oriented design, design patterns, and class diagrams for real-world systems.",
    },
    {
        "name": "High-Level Design",
        "category": "System Design",
        "difficulty": "Advanced",
        "recommended_questions": 10,
        "description": "Scalability, load balancing, caching, databases, and distributed systems.",
    },
    # Aptitude
    {
        "name": "Quantitative Aptitude",
        "category": "Aptitude",
        "difficulty": "Beginner",
        "recommended_questions": 50,
        "description": "Number systems, percentages, ratios, time and work, profit and loss.",
    },
    {
        "name": "Logical Reasoning",
        "category": "Aptitude",
        "difficulty": "Beginner",
        "recommended_questions": 40,
        "description": "Puzzles, blood relations, seating arrangements, and logical deductions.",
    },
    {
        "name": "Verbal Ability",
        "category": "Aptitude",
        "difficulty": "Beginner",
        "recommended_questions": 30,
        "description": "Reading comprehension, grammar, vocabulary, and sentence correction.",
    },
]


async def seed_topics(db: AsyncSession) -> int:
    """Insert the default topics, leaving existing rows untouched. Returns number of topics seeded."""
    seeded = 0
    for topic_data in TOPIC_SEED_DATA:
        stmt = (
            dialect_insert(db, Topic)
            .values(**topic_data)
            .on_conflict_do_nothing(index_elements=["name"])
        )
        await db.execute(stmt)
        seeded += 1

    await db.commit()
    logger.info("Seeded %d topics", seeded)
    return seeded
