"""
Achievement rules and profile updates applied after a completed quiz.
"""
from datetime import datetime
from typing import List, Optional

from .models import QuizResult, UserProfile

PERFECT_SCORE = "Perfect Score"
TECH_EXPERT = "Tech Expert"
QUIZ_MASTER = "Quiz Master"

EXPERT_THRESHOLD = 80
MASTER_GAMES_PLAYED = 5


def evaluate_achievements(result: QuizResult, profile: UserProfile) -> List[str]:
    """
    Work out which achievements this result unlocks.

    Identifiers already on the profile are never returned again.

    Args:
        result: Outcome of the quiz just played
        profile: Profile as it was before this quiz

    Returns:
        Newly unlocked achievement identifiers
    """
    earned = []
    percentage = result.percentage

    if result.total_questions > 0 and result.score == result.total_questions:
        earned.append(PERFECT_SCORE)
    if percentage >= EXPERT_THRESHOLD:
        earned.append(TECH_EXPERT)
    if profile.games_played + 1 >= MASTER_GAMES_PLAYED:
        earned.append(QUIZ_MASTER)

    return [achievement for achievement in earned if achievement not in profile.achievements]


def performance_message(percentage: float) -> str:
    if percentage >= 90:
        return "Outstanding! You're a tech expert! 🎉"
    if percentage >= 80:
        return "Excellent work! Great knowledge! 👏"
    if percentage >= 70:
        return "Good job! Keep learning! 📚"
    if percentage >= 50:
        return "Not bad! Room for improvement! 💪"
    return "Keep studying! You'll get better! 🚀"


def apply_result(
    profile: UserProfile,
    result: QuizResult,
    new_achievements: List[str],
    now: Optional[datetime] = None,
) -> UserProfile:
    """Return a new profile with this quiz's score, game count and achievements added."""
    achievements = list(profile.achievements)
    for achievement in new_achievements:
        if achievement not in achievements:
            achievements.append(achievement)

    return UserProfile(
        username=profile.username,
        avatar=profile.avatar,
        total_score=profile.total_score + result.score,
        games_played=profile.games_played + 1,
        achievements=achievements,
        last_played=now or datetime.now(),
    )
