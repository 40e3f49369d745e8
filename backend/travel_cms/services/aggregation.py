"""
Dashboard statistics and global search.

Both are fan-out reads: several independent queries run concurrently, each
on its own session in the threadpool, and the handler waits for all of
them. There is no partial result; if one sub-query raises, the whole call
fails.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Tuple
import asyncio
import logging

from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from travel_cms.core.config import settings
from travel_cms.core.monitoring import track_performance
from travel_cms.db.models import InquiryStatus
from travel_cms.db.repositories import (
    BlogPostRepository,
    ContactInquiryRepository,
    DestinationRepository,
    PackageEnquiryRepository,
    PackageRepository,
    ReviewRepository,
    TestimonialRepository,
)

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
HISTOGRAM_MONTHS = 6

SubQuery = Callable[[Session], Any]


async def fan_out(factory: Callable[[], Session], queries: Dict[str, SubQuery]) -> Dict[str, Any]:
    """Run every sub-query concurrently on a fresh session; all or nothing."""

    def run(query: SubQuery) -> Any:
        db = factory()
        try:
            return query(db)
        finally:
            db.close()

    results = await asyncio.gather(*(run_in_threadpool(run, q) for q in queries.values()))
    return dict(zip(queries.keys(), results))


# ---------------------------------------------------------------------------
# Dashboard stats
# ---------------------------------------------------------------------------

def month_buckets(now: datetime, months: int = HISTOGRAM_MONTHS) -> List[Tuple[int, int]]:
    """(year, month) pairs for the last ``months`` calendar months, oldest first."""
    buckets = []
    year, month = now.year, now.month
    for _ in range(months):
        buckets.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(buckets))


def enquiry_histogram(created: List[datetime], now: datetime, months: int = HISTOGRAM_MONTHS) -> List[Dict[str, Any]]:
    counts = {bucket: 0 for bucket in month_buckets(now, months)}
    for ts in created:
        key = (ts.year, ts.month)
        if key in counts:
            counts[key] += 1
    return [{"month": f"{y:04d}-{m:02d}", "count": c} for (y, m), c in counts.items()]


def _recent_enquiries(db: Session) -> List[Dict[str, Any]]:
    rows = PackageEnquiryRepository(db).recent(limit=5)
    return [
        dict(e.to_dict(), package={"name": e.package.name} if e.package else None)
        for e in rows
    ]


def _monthly_enquiries(db: Session) -> List[Dict[str, Any]]:
    now = datetime.utcnow()
    first_year, first_month = month_buckets(now)[0]
    since = datetime(first_year, first_month, 1)
    return enquiry_histogram(PackageEnquiryRepository(db).created_since(since), now)


STAT_QUERIES: Dict[str, SubQuery] = {
    "total_packages": lambda db: PackageRepository(db).count_active(),
    "total_destinations": lambda db: DestinationRepository(db).count_active(),
    "total_enquiries": lambda db: PackageEnquiryRepository(db).count_all(),
    "total_blog_posts": lambda db: BlogPostRepository(db).count_published(),
    "new_enquiries": lambda db: PackageEnquiryRepository(db).count_by_status(InquiryStatus.NEW.value),
    "pending_reviews": lambda db: ReviewRepository(db).count_pending(),
    "pending_testimonials": lambda db: TestimonialRepository(db).count_pending(),
}


@track_performance("dashboard stats")
async def dashboard_stats(factory: Callable[[], Session]) -> Dict[str, Any]:
    queries = dict(STAT_QUERIES)
    queries["recent_enquiries"] = _recent_enquiries
    queries["monthly_enquiries"] = _monthly_enquiries
    results = await fan_out(factory, queries)

    return {
        "stats": {key: results[key] for key in STAT_QUERIES},
        "recent_enquiries": results["recent_enquiries"],
        "monthly_enquiries": results["monthly_enquiries"],
    }


# ---------------------------------------------------------------------------
# Global (admin) search
# ---------------------------------------------------------------------------

def _package_hits(db: Session, q: str, limit: int) -> List[Dict[str, Any]]:
    return [
        {"id": p.id, "type": "package", "title": p.name, "subtitle": p.destination_name,
         "href": f"/admin/packages/{p.id}", "status": p.status}
        for p in PackageRepository(db).search(q, limit)
    ]


def _destination_hits(db: Session, q: str, limit: int) -> List[Dict[str, Any]]:
    return [
        {"id": d.id, "type": "destination", "title": d.name, "subtitle": d.location,
         "href": f"/admin/destinations/{d.id}", "status": d.status}
        for d in DestinationRepository(db).search(q, limit)
    ]


def _enquiry_hits(db: Session, q: str, limit: int) -> List[Dict[str, Any]]:
    return [
        {"id": e.id, "type": "enquiry", "title": e.name,
         "subtitle": e.package.name if e.package else e.email,
         "href": "/admin/enquiries", "status": e.status}
        for e in PackageEnquiryRepository(db).search(q, limit)
    ]


def _contact_hits(db: Session, q: str, limit: int) -> List[Dict[str, Any]]:
    return [
        {"id": c.id, "type": "contact", "title": c.name, "subtitle": c.subject or c.email,
         "href": "/admin/contacts", "status": c.status}
        for c in ContactInquiryRepository(db).search(q, limit)
    ]


def _blog_hits(db: Session, q: str, limit: int) -> List[Dict[str, Any]]:
    return [
        {"id": b.id, "type": "blog", "title": b.title, "subtitle": f"By {b.author}",
         "href": "/admin/blog", "status": "PUBLISHED" if b.published else "DRAFT"}
        for b in BlogPostRepository(db).search(q, limit)
    ]


def _testimonial_hits(db: Session, q: str, limit: int) -> List[Dict[str, Any]]:
    return [
        {"id": t.id, "type": "testimonial", "title": t.name,
         "subtitle": f"{t.location or ''} - {t.rating}★",
         "href": "/admin/testimonials", "status": t.status}
        for t in TestimonialRepository(db).search(q, limit)
    ]


# Result order follows this table, not relevance
SEARCH_SECTIONS: List[Tuple[str, Callable[[Session, str, int], List[Dict[str, Any]]]]] = [
    ("packages", _package_hits),
    ("destinations", _destination_hits),
    ("enquiries", _enquiry_hits),
    ("contacts", _contact_hits),
    ("blog_posts", _blog_hits),
    ("testimonials", _testimonial_hits),
]


@track_performance("admin search")
async def global_search(factory: Callable[[], Session], query: str) -> Dict[str, Any]:
    query = query or ""
    if len(query) < MIN_QUERY_LENGTH:
        return {"results": []}

    limit = settings.search_result_limit
    sections = await fan_out(
        factory,
        {name: (lambda db, fn=fn: fn(db, query, limit)) for name, fn in SEARCH_SECTIONS},
    )

    results: List[Dict[str, Any]] = []
    for name, _ in SEARCH_SECTIONS:
        results.extend(sections[name])
    return {
        "results": results,
        "counts": {name: len(sections[name]) for name, _ in SEARCH_SECTIONS},
    }


# ---------------------------------------------------------------------------
# Public search (site header)
# ---------------------------------------------------------------------------

async def public_search(factory: Callable[[], Session], query: str) -> Dict[str, Any]:
    query = query or ""
    if len(query) < MIN_QUERY_LENGTH:
        return {"results": []}

    def packages(db: Session):
        return [
            {"id": p.id, "type": "package", "title": p.name,
             "subtitle": f"{p.destination_name} • {p.duration}", "price": p.price,
             "href": f"/packages/{p.slug}", "image": p.image, "rating": p.rating}
            for p in PackageRepository(db).search(query, 6, active_only=True)
        ]

    def destinations(db: Session):
        return [
            {"id": d.id, "type": "destination", "title": d.name,
             "subtitle": f"{d.location}, {d.country}",
             "href": f"/destinations?search={d.slug}", "image": d.image, "rating": d.rating}
            for d in DestinationRepository(db).search(query, 4, active_only=True)
        ]

    sections = await fan_out(factory, {"packages": packages, "destinations": destinations})
    return {
        "results": sections["packages"] + sections["destinations"],
        "counts": {"packages": len(sections["packages"]), "destinations": len(sections["destinations"])},
    }
