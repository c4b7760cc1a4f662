"""
Projects listing: category resolution, "recently updated" badges,
filtering and fixed-size pages.
"""
import math
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Set

from schemas import Project, ProjectCategory

ALL = "all"
DEFAULT_TONE = {"start": "#a855f7", "end": "#6366f1"}


def categories_by_id(categories: Iterable[ProjectCategory]) -> Dict[str, ProjectCategory]:
    return {c.id: c for c in categories if c.id}


def categories_by_key(categories: Iterable[ProjectCategory]) -> Dict[str, ProjectCategory]:
    return {c.key: c for c in categories if c.key}


def category_key(project: Project, by_id: Dict[str, ProjectCategory]) -> Optional[str]:
    """Resolve the category slug a project belongs to"""
    if project.category_ref and project.category_ref in by_id and by_id[project.category_ref].key:
        return by_id[project.category_ref].key
    category = project.category
    if isinstance(category, dict):
        ref = category.get("_ref")
        if ref and ref in by_id and by_id[ref].key:
            return by_id[ref].key
        if category.get("key"):
            return category["key"]
    elif isinstance(category, str) and category:
        return category
    return project.category_slug


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def recent_category_keys(
    projects: Iterable[Project],
    by_id: Dict[str, ProjectCategory],
    now: Optional[datetime] = None,
    days: int = 30,
) -> Set[str]:
    now = _aware(now or datetime.now(timezone.utc))
    cutoff = now - timedelta(days=days)
    recent = set()
    for project in projects:
        key = category_key(project, by_id)
        if not key:
            continue
        stamps = [_aware(d) for d in (project.added, project.updated) if d]
        if stamps and max(stamps) >= cutoff:
            recent.add(key)
    return recent


def filter_projects(projects: List[Project], active: str, by_id: Dict[str, ProjectCategory]) -> List[Project]:
    if not active or active == ALL:
        return list(projects)
    return [p for p in projects if category_key(p, by_id) == active]


def paginate(items: List, page: int, page_size: int = 6) -> tuple:
    """Returns (page_items, page_count, effective_page)"""
    page_count = max(1, math.ceil(len(items) / page_size))
    if page < 0 or page >= page_count:
        page = 0
    start = page * page_size
    return items[start:start + page_size], page_count, page


def tone(category: Optional[ProjectCategory]) -> Dict[str, str]:
    if category is None:
        return dict(DEFAULT_TONE)
    return {
        "start": category.gradient_start or DEFAULT_TONE["start"],
        "end": category.gradient_end or DEFAULT_TONE["end"],
    }
