"""
Catalog seeding.
Fills the challenge and achievement catalogs on first start; existing rows are never touched.
"""
import logging
from sqlalchemy.orm import Session

from challenge_engine.models import Challenge, Achievement
from challenge_engine.constants import (
    ChallengeCategory as Cat, ChallengeDifficulty as Diff,
    RequirementType as Req, AchievementTier as Tier,
)
from challenge_engine.repositories.challenge_repository import (
    ChallengeRepository, AchievementRepository,
)

logger = logging.getLogger("challenge_engine.seed")

# (title, description, category, subcategory, difficulty, points, instructions)
CHALLENGE_SEED_DATA = [
    ("Desk Stretch Series", "Relieve tension with simple stretches you can do at your desk",
     Cat.PHYSICAL, "stretching", Diff.EASY, 10,
     "Perform neck rolls, shoulder shrugs and seated twists. Hold each stretch for 10-15 seconds."),
    ("Plank Challenge", "Build core strength with a timed plank hold",
     Cat.PHYSICAL, "strength", Diff.MEDIUM, 20,
     "Hold a forearm plank for 30 seconds, rest 15 seconds, repeat."),
    ("High-Intensity Cardio Burst", "Push your limits with jumping jacks and high knees",
     Cat.PHYSICAL, "cardio", Diff.HARD, 30,
     "Alternate 20 seconds of jumping jacks with 20 seconds of high knees for 2 minutes."),
    ("Mindful Breathing", "Center yourself with focused breathing",
     Cat.MENTAL, "mindfulness", Diff.EASY, 10,
     "Breathe in for 4 counts, hold for 4, out for 6. Repeat for 2 minutes."),
    ("Gratitude List", "Write down what you are thankful for",
     Cat.MENTAL, "reflection", Diff.MEDIUM, 20,
     "List five specific things you are grateful for today and why."),
    ("New Word", "Learn one new word and use it",
     Cat.LEARNING, "language", Diff.EASY, 10,
     "Pick an unfamiliar word, read its definition and write two sentences using it."),
    ("Explain It Simply", "Teach yourself a concept in plain words",
     Cat.LEARNING, "comprehension", Diff.HARD, 30,
     "Choose a concept you half-know and explain it out loud as if to a child."),
    ("Expense Check", "Review yesterday's spending",
     Cat.FINANCE, "budgeting", Diff.EASY, 10,
     "Open your banking app and categorise every purchase from yesterday."),
    ("Cancel One Subscription", "Find a recurring charge you do not need",
     Cat.FINANCE, "saving", Diff.MEDIUM, 20,
     "Scan your subscriptions and cancel or pause one you rarely use."),
    ("Thank-You Message", "Send a quick note of appreciation",
     Cat.RELATIONSHIPS, "gratitude", Diff.EASY, 10,
     "Message someone and thank them for something specific they did."),
    ("Reconnect", "Reach out to someone you have not talked to in a while",
     Cat.RELATIONSHIPS, "connection", Diff.MEDIUM, 20,
     "Send a short message to an old friend asking how they are doing."),
    ("Cold Shower Finish", "End your shower with 30 seconds of cold water",
     Cat.EXTREME, "resilience", Diff.HARD, 30,
     "Turn the water to cold for the final 30 seconds and focus on slow breathing."),
]

# (name, description, icon, tier, requirement_type, requirement_value, requirement_meta)
ACHIEVEMENT_SEED_DATA = [
    ("First Step", "Complete your first challenge", "footprints", Tier.BRONZE,
     Req.CHALLENGES_COMPLETED, 1, None),
    ("Getting Into It", "Complete 10 challenges", "check-circle", Tier.BRONZE,
     Req.CHALLENGES_COMPLETED, 10, None),
    ("Habit Builder", "Complete 50 challenges", "layers", Tier.SILVER,
     Req.CHALLENGES_COMPLETED, 50, None),
    ("Centurion", "Complete 100 challenges", "crown", Tier.GOLD,
     Req.CHALLENGES_COMPLETED, 100, None),
    ("On a Roll", "Reach a 3-day streak", "flame", Tier.BRONZE,
     Req.STREAK_DAYS, 3, None),
    ("Week Warrior", "Reach a 7-day streak", "calendar-check", Tier.SILVER,
     Req.STREAK_DAYS, 7, None),
    ("Unstoppable", "Reach a 30-day streak", "zap", Tier.PLATINUM,
     Req.STREAK_DAYS, 30, None),
    ("Point Collector", "Earn 100 points", "star", Tier.BRONZE,
     Req.TOTAL_POINTS, 100, None),
    ("High Scorer", "Earn 1000 points", "trophy", Tier.GOLD,
     Req.TOTAL_POINTS, 1000, None),
    ("Body in Motion", "Complete 10 physical challenges", "dumbbell", Tier.SILVER,
     Req.CATEGORY_CHALLENGES, 10, {"category": Cat.PHYSICAL.value}),
    ("Calm Mind", "Complete 10 mental challenges", "brain", Tier.SILVER,
     Req.CATEGORY_CHALLENGES, 10, {"category": Cat.MENTAL.value}),
    ("Lifelong Learner", "Complete 10 learning challenges", "book-open", Tier.SILVER,
     Req.CATEGORY_CHALLENGES, 10, {"category": Cat.LEARNING.value}),
    ("Money Minded", "Complete 10 finance challenges", "piggy-bank", Tier.SILVER,
     Req.CATEGORY_CHALLENGES, 10, {"category": Cat.FINANCE.value}),
    ("People Person", "Complete 10 relationship challenges", "heart", Tier.SILVER,
     Req.CATEGORY_CHALLENGES, 10, {"category": Cat.RELATIONSHIPS.value}),
    ("Well Rounded", "Complete 5 challenges in every core category", "compass", Tier.PLATINUM,
     Req.ALL_CATEGORIES, 5, None),
]


def seed_catalog(db: Session) -> dict:
    """
    Seed challenges and achievements when their tables are empty.

    Returns:
        Number of rows inserted per catalog
    """
    inserted = {"challenges": 0, "achievements": 0}

    if ChallengeRepository.count(db) == 0:
        ChallengeRepository.create_many(db, [
            Challenge(
                title=title, description=description, category=category,
                subcategory=subcategory, difficulty=difficulty, points=points,
                instructions=instructions,
            )
            for title, description, category, subcategory, difficulty, points, instructions
            in CHALLENGE_SEED_DATA
        ])
        inserted["challenges"] = len(CHALLENGE_SEED_DATA)
    else:
        logger.info("Challenge catalog already seeded")

    if AchievementRepository.count(db) == 0:
        AchievementRepository.create_many(db, [
            Achievement(
                name=name, description=description, icon=icon, tier=tier,
                requirement_type=requirement_type, requirement_value=requirement_value,
                requirement_meta=requirement_meta, sort_order=index,
            )
            for index, (name, description, icon, tier, requirement_type, requirement_value, requirement_meta)
            in enumerate(ACHIEVEMENT_SEED_DATA)
        ])
        inserted["achievements"] = len(ACHIEVEMENT_SEED_DATA)
    else:
        logger.info("Achievement catalog already seeded")

    db.commit()
    if inserted["challenges"] or inserted["achievements"]:
        logger.info(
            f"Seeded {inserted['challenges']} challenges and {inserted['achievements']} achievements"
        )
    return inserted
