"""
Gamification Service - referrer impact stats, reputation and achievements.

Impact score:
    successful_placements * 50
  + total_jobs_posted     * 10
  + testimonial_count     * 25
  + (streak_days // 7)    * 20

Reputation: newcomer (0-99), helper (100-499), expert (500-1999), legend (2000+)

Counters only ever go up. streak_days is the best run of consecutive active
days; current_streak and last_active_on track the run in progress.
Each achievement unlocks once per referrer (unique constraint).
"""

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.orm import Session

from referralme.db.postgres import fetch_all, fetch_one
from referralme.db.schema import referrer_achievements, referrer_impact_stats

logger = logging.getLogger(__name__)

COUNTERS = (
    "total_jobs_posted",
    "total_applications",
    "successful_placements",
    "profile_views",
    "testimonial_count",
)

REPUTATION_LEVELS = [
    (2000, "legend"),
    (500, "expert"),
    (100, "helper"),
    (0, "newcomer"),
]

# (type, title, description, icon, color, stat, threshold)
ACHIEVEMENTS = [
    ("first_job_post", "Getting Started", "Posted your first job opportunity", "briefcase", "blue", "total_jobs_posted", 1),
    ("job_creator", "Job Creator", "Posted 5 job opportunities", "briefcase", "blue", "total_jobs_posted", 5),
    ("prolific_poster", "Prolific Poster", "Posted 10 job opportunities", "megaphone", "indigo", "total_jobs_posted", 10),
    ("first_referral", "First Referral", "Helped your first candidate get placed", "handshake", "teal", "successful_placements", 1),
    ("career_maker", "Career Maker", "Helped 10 people find jobs", "trophy", "gold", "successful_placements", 10),
    ("top_performer", "Top Performer", "Achieved 100+ impact score", "star", "purple", "impact_score", 100),
    ("impact_leader", "Impact Leader", "Achieved 500+ impact score", "award", "purple", "impact_score", 500),
    ("legend", "Legend", "Achieved 1000+ impact score", "crown", "gold", "impact_score", 1000),
    ("streak_master", "Streak Master", "Active for 30 consecutive days", "zap", "orange", "streak_days", 30),
    ("community_leader", "Community Leader", "Received 20+ testimonials", "users", "green", "testimonial_count", 20),
]


def compute_impact_score(stats: dict) -> int:
    return (
        stats["successful_placements"] * 50
        + stats["total_jobs_posted"] * 10
        + stats["testimonial_count"] * 25
        + (stats["streak_days"] // 7) * 20
    )


def reputation_for(impact_score: int) -> str:
    for threshold, level in REPUTATION_LEVELS:
        if impact_score >= threshold:
            return level
    return "newcomer"


def advance_streak(current_streak: int, last_active_on: Optional[date], today: date) -> int:
    """Length of the running streak after activity on `today`."""
    if last_active_on == today:
        return max(current_streak, 1)
    if last_active_on == today - timedelta(days=1):
        return current_streak + 1
    return 1


def get_or_create_stats(db: Session, referrer_id: str) -> dict:
    stats = fetch_one(db, select(referrer_impact_stats).where(referrer_impact_stats.c.referrer_id == referrer_id))
    if stats:
        return stats

    db.execute(
        insert(referrer_impact_stats).values(
            referrer_id=referrer_id,
            total_jobs_posted=0,
            total_applications=0,
            successful_placements=0,
            impact_score=0,
            reputation_level="newcomer",
            streak_days=0,
            current_streak=0,
            profile_views=0,
            testimonial_count=0,
            last_updated=datetime.utcnow(),
        )
    )
    return fetch_one(db, select(referrer_impact_stats).where(referrer_impact_stats.c.referrer_id == referrer_id))


def record_event(
    db: Session,
    referrer_id: str,
    counter: Optional[str] = None,
    amount: int = 1,
    active: bool = True,
    today: Optional[date] = None
) -> dict:
    """
    Apply one event to a referrer's stats inside the caller's transaction.

    Args:
        counter: one of COUNTERS to increment, or None for pure activity
        amount: positive increment
        active: the referrer did something themselves (advances the streak)
        today: activity date, defaults to the current UTC date

    Returns:
        The updated stats row as a dict.

    Raises:
        ValueError on an unknown counter or a non-positive amount
    """
    if counter is not None:
        if counter not in COUNTERS:
            raise ValueError(f"Unknown impact counter '{counter}'")
        if amount <= 0:
            raise ValueError("Impact counters only increase")

    stats = get_or_create_stats(db, referrer_id)
    values = {}

    if counter is not None:
        # Increment in SQL so concurrent events do not lose updates
        values[counter] = getattr(referrer_impact_stats.c, counter) + amount
        stats[counter] += amount

    if active:
        today = today or datetime.utcnow().date()
        current = advance_streak(stats["current_streak"], stats["last_active_on"], today)
        values["current_streak"] = current
        values["last_active_on"] = today
        if current > stats["streak_days"]:
            values["streak_days"] = current
            stats["streak_days"] = current
        stats["current_streak"] = current
        stats["last_active_on"] = today

    impact = compute_impact_score(stats)
    # Never let a recomputation move the score backwards
    impact = max(impact, stats["impact_score"])
    values["impact_score"] = impact
    values["reputation_level"] = reputation_for(impact)
    values["last_updated"] = datetime.utcnow()

    db.execute(
        update(referrer_impact_stats)
        .where(referrer_impact_stats.c.referrer_id == referrer_id)
        .values(**values)
    )

    stats = fetch_one(db, select(referrer_impact_stats).where(referrer_impact_stats.c.referrer_id == referrer_id))
    unlocked = evaluate_achievements(db, referrer_id, stats)
    if unlocked:
        logger.info("Referrer %s unlocked %s", referrer_id, ", ".join(unlocked))
    return stats


def evaluate_achievements(db: Session, referrer_id: str, stats: dict) -> List[str]:
    """Insert every achievement the stats qualify for that is not unlocked yet."""
    existing = {
        row["achievement_type"]
        for row in fetch_all(
            db,
            select(referrer_achievements.c.achievement_type)
            .where(referrer_achievements.c.referrer_id == referrer_id)
        )
    }

    unlocked = []
    for achievement_type, title, description, icon, color, stat, threshold in ACHIEVEMENTS:
        if achievement_type in existing or stats[stat] < threshold:
            continue
        db.execute(
            insert(referrer_achievements).values(
                referrer_id=referrer_id,
                achievement_type=achievement_type,
                achievement_title=title,
                achievement_description=description,
                badge_icon=icon,
                badge_color=color,
                unlocked_at=datetime.utcnow(),
            )
        )
        unlocked.append(achievement_type)
    return unlocked


def list_achievements(db: Session, referrer_id: str) -> List[dict]:
    return fetch_all(
        db,
        select(referrer_achievements)
        .where(
            referrer_achievements.c.referrer_id == referrer_id,
            referrer_achievements.c.is_visible.is_(True)
        )
        .order_by(referrer_achievements.c.unlocked_at, referrer_achievements.c.achievement_type)
    )
