LEVELS = [
    {
        "level_number": 1,
        "name": "Level 1 - Fundamentals",
        "description": "Learn the fundamentals of Islam including belief and worship",
    },
    {
        "level_number": 2,
        "name": "Level 2 - Deepening",
        "description": "Deepen your understanding of Islamic sciences",
    },
    {
        "level_number": 3,
        "name": "Level 3 - Specialization",
        "description": "Specialize in advanced Islamic sciences",
    },
    {
        "level_number": 4,
        "name": "Level 4 - Mastery",
        "description": "Master Islamic sciences and prepare for dawah",
    },
]

BRANCHES = [
    {"slug": "aqeedah", "name": "Aqeedah"},
    {"slug": "fiqh", "name": "Fiqh"},
    {"slug": "seerah", "name": "Seerah"},
    {"slug": "tafseer", "name": "Tafseer"},
    {"slug": "hadith", "name": "Hadith Sciences"},
    {"slug": "tarbiyah", "name": "Tarbiyah"},
]

BADGES = [
    {
        "name": "First Steps",
        "description": "Complete your first lesson.",
        "icon": "🌱",
        "criteria": {"type": "lessons_completed", "value": 1},
    },
    {
        "name": "Dedicated Learner",
        "description": "Complete 10 lessons.",
        "icon": "📚",
        "criteria": {"type": "lessons_completed", "value": 10},
    },
    {
        "name": "Quiz Taker",
        "description": "Pass 5 quizzes.",
        "icon": "✅",
        "criteria": {"type": "quizzes_passed", "value": 5},
    },
    {
        "name": "Perfectionist",
        "description": "Score 100% on a quiz.",
        "icon": "💯",
        "criteria": {"type": "perfect_score", "value": 1},
    },
    {
        "name": "Fundamentals Graduate",
        "description": "Complete Level 1 and unlock Level 2.",
        "icon": "🎓",
        "criteria": {"type": "level_completed", "value": 2},
    },
    {
        "name": "Mastery Seeker",
        "description": "Unlock the Mastery level.",
        "icon": "🏆",
        "criteria": {"type": "level_completed", "value": 4},
    },
    {
        "name": "Community Helper",
        "description": "Awarded by the academy for helping fellow students.",
        "icon": "🤝",
        "criteria": {"type": "manual"},
    },
]
