"""
Category-balanced random question selection.
"""
import logging
import random
from typing import Dict, List, Optional, Sequence

from .models import Question

logger = logging.getLogger(__name__)


def group_by_category(pool: Sequence[Question]) -> Dict[str, List[Question]]:
    """
    Partition a pool by category label.

    Categories appear in the order they are first seen in the pool and each
    category keeps its questions in pool order.
    """
    groups: Dict[str, List[Question]] = {}
    for question in pool:
        groups.setdefault(question.category, []).append(question)
    return groups


def compute_allotments(categories: Sequence[str], target_count: int) -> Dict[str, int]:
    """
    Split a target count as evenly as possible across categories.

    The first ``target_count % len(categories)`` categories get one extra question.

    Args:
        categories: Category labels in enumeration order
        target_count: Number of questions wanted in total

    Returns:
        Mapping of category label to allotment
    """
    if not categories:
        return {}
    base, extra = divmod(max(target_count, 0), len(categories))
    return {
        category: base + 1 if position < extra else base
        for position, category in enumerate(categories)
    }


def select_questions(
    pool: Sequence[Question],
    target_count: int,
    rng: Optional[random.Random] = None,
    sort_categories: bool = False,
) -> List[Question]:
    """
    Select a randomized, category-balanced subset of the pool.

    When the pool is no larger than the target, every question is returned in
    random order. Otherwise each category contributes its allotment, chosen at
    random, and the combined selection is shuffled once more so position does
    not reveal category. A category holding fewer questions than its allotment
    contributes all of them and nothing is backfilled, so the result may be
    shorter than ``target_count``.

    Args:
        pool: Available questions, read-only
        target_count: Desired number of questions
        rng: Random source, defaults to a freshly seeded generator
        sort_categories: Visit categories in label order instead of
            first-appearance order

    Returns:
        Selected questions
    """
    rng = rng or random.Random()

    if target_count < 1:
        return []

    if len(pool) <= target_count:
        selected = list(pool)
        rng.shuffle(selected)
        return selected

    groups = group_by_category(pool)
    categories = sorted(groups) if sort_categories else list(groups)
    allotments = compute_allotments(categories, target_count)

    selected: List[Question] = []
    for category in categories:
        candidates = list(groups[category])
        wanted = allotments[category]
        if len(candidates) < wanted:
            logger.warning(
                f"Category '{category}' has {len(candidates)} questions but was allotted {wanted}",
                extra={
                    'event_type': 'selection_shortfall',
                    'category': category,
                    'available': len(candidates),
                    'allotment': wanted,
                }
            )
        rng.shuffle(candidates)
        selected.extend(candidates[:wanted])

    rng.shuffle(selected)

    if len(selected) < target_count:
        logger.warning(
            f"Selected {len(selected)} of {target_count} requested questions",
            extra={
                'event_type': 'selection_short',
                'selected': len(selected),
                'target_count': target_count,
            }
        )
    return selected
