"""
Repository pattern for data access.

Repositories own every query the handlers issue. They do not swallow
database errors: a failing query propagates to the handler boundary, which
turns it into a 500.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Type
import logging

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from travel_cms.core.config import settings
from travel_cms.db.models import (
    Accommodation,
    ApprovalStatus,
    Base,
    BlogPost,
    ContactInquiry,
    DEFAULT_SITE_SETTINGS,
    Destination,
    Package,
    PackageEnquiry,
    PublishStatus,
    Review,
    Role,
    SETTINGS_SINGLETON_KEY,
    SiteSettings,
    Testimonial,
    User,
)

logger = logging.getLogger(__name__)

# Columns copied verbatim when a package is duplicated
PACKAGE_CLONE_FIELDS = (
    "name", "destination_id", "destination_name", "location", "country", "image", "images",
    "price", "original_price", "duration", "group_size", "rating", "reviews", "description",
    "highlights", "inclusions", "exclusions", "itinerary", "faqs", "policies", "best_time",
    "difficulty", "type", "badge",
)


class SlugConflictError(Exception):
    """No free slug found within the configured number of insert attempts."""


class Repository:
    """Shared lookups and writes for one model."""

    model: Type[Base] = None

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, entity_id: str):
        return self.db.query(self.model).filter(self.model.id == entity_id).first()

    def get_by_id_or_slug(self, key: str, options=()):
        """Single query matching either the primary key or the unique slug."""
        return (
            self.db.query(self.model)
            .options(*options)
            .filter(or_(self.model.id == key, self.model.slug == key))
            .first()
        )

    def slug_taken(self, slug: str) -> bool:
        return self.db.query(self.model.id).filter(self.model.slug == slug).first() is not None

    def add(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def update(self, obj, data: Dict[str, Any]):
        for key, value in data.items():
            setattr(obj, key, value)
        obj.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def delete(self, obj) -> None:
        self.db.delete(obj)
        self.db.commit()

    def insert_with_unique_slug(self, build: Callable[[str], Any], candidates: Iterator[str]):
        """
        Insert the row produced by ``build(slug)`` using the first free candidate.

        Candidates already present are skipped with a read; the unique
        constraint stays the source of truth, so an insert that loses a race
        rolls back and moves on to the next candidate. Gives up after
        ``settings.slug_max_attempts`` conflicting inserts.
        """
        conflicts = 0
        for slug in candidates:
            if self.slug_taken(slug):
                continue
            obj = build(slug)
            self.db.add(obj)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                if not self.slug_taken(slug):
                    # Some other constraint failed
                    raise
                conflicts += 1
                logger.info(f"{self.model.__name__} slug '{slug}' taken concurrently, retrying")
                if conflicts >= settings.slug_max_attempts:
                    break
                continue
            self.db.refresh(obj)
            return obj
        raise SlugConflictError(f"Could not allocate a unique {self.model.__name__} slug")


class PackageRepository(Repository):
    model = Package

    def filter_packages(
        self,
        status: Optional[str] = None,
        package_type: Optional[str] = None,
        featured: Optional[bool] = None,
        destination_id: Optional[str] = None,
        destination: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> List[Package]:
        """All filters are optional; featured packages first, then newest."""
        query = self.db.query(Package).options(selectinload(Package.destination))
        if status:
            query = query.filter(Package.status == status)
        if package_type:
            query = query.filter(Package.type == package_type)
        if featured:
            query = query.filter(Package.featured.is_(True))
        if destination_id:
            query = query.filter(Package.destination_id == destination_id)
        if destination:
            query = query.filter(Package.destination_name.ilike(f"%{destination}%"))
        if min_price is not None:
            query = query.filter(Package.price >= min_price)
        if max_price is not None:
            query = query.filter(Package.price <= max_price)

        query = query.order_by(Package.featured.desc(), Package.created_at.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    def get_detail(self, key: str) -> Optional[Package]:
        return self.get_by_id_or_slug(
            key, options=(selectinload(Package.destination), selectinload(Package.accommodations))
        )

    def create(self, data: Dict[str, Any], slug_candidates: Iterator[str],
               accommodations: Optional[List[Dict[str, Any]]] = None) -> Package:
        accommodations = accommodations or []

        def build(slug: str) -> Package:
            pkg = Package(slug=slug, **data)
            pkg.accommodations = [
                Accommodation(
                    hotel_name=acc.get("hotel_name"),
                    room_type=acc.get("room_type"),
                    hotel_category=acc.get("hotel_category"),
                    nights=acc.get("nights") or 1,
                    destination_id=acc.get("destination_id"),
                )
                for acc in accommodations
            ]
            return pkg

        return self.insert_with_unique_slug(build, slug_candidates)

    def duplicate(self, source: Package, slug_candidates: Iterator[str]) -> Package:
        """Clone ``source`` as an inactive, non-featured draft sharing its accommodations."""

        def build(slug: str) -> Package:
            clone = Package(slug=slug, status=PublishStatus.INACTIVE.value, featured=False)
            for field in PACKAGE_CLONE_FIELDS:
                setattr(clone, field, getattr(source, field))
            clone.accommodations = list(source.accommodations)
            return clone

        return self.insert_with_unique_slug(build, slug_candidates)

    def count_active(self) -> int:
        return self.db.query(func.count(Package.id)).filter(Package.status == PublishStatus.ACTIVE.value).scalar()

    def search(self, text: str, limit: int, active_only: bool = False) -> List[Package]:
        pattern = f"%{text}%"
        columns = [Package.name, Package.destination_name, Package.location]
        if active_only:
            columns.append(Package.country)
        query = self.db.query(Package).filter(or_(*[c.ilike(pattern) for c in columns]))
        if active_only:
            query = query.filter(Package.status == PublishStatus.ACTIVE.value).order_by(
                Package.featured.desc(), Package.rating.desc()
            )
        return query.limit(limit).all()

    def refresh_review_stats(self, package_id: str) -> None:
        """Recompute review count and mean rating from APPROVED reviews."""
        count, average = (
            self.db.query(func.count(Review.id), func.avg(Review.rating))
            .filter(Review.package_id == package_id, Review.status == ApprovalStatus.APPROVED.value)
            .one()
        )
        package = self.get_by_id(package_id)
        if package is None:
            return
        package.reviews = count or 0
        package.rating = round(float(average), 1) if average else 0
        self.db.commit()


class DestinationRepository(Repository):
    model = Destination

    def filter_destinations(
        self,
        status: Optional[str] = None,
        region: Optional[str] = None,
        category: Optional[str] = None,
    ) -> List[Tuple[Destination, int]]:
        """Destinations ordered by name, each with its package count."""
        package_count = (
            self.db.query(func.count(Package.id))
            .filter(Package.destination_id == Destination.id)
            .correlate(Destination)
            .scalar_subquery()
        )
        query = self.db.query(Destination, package_count)
        if status:
            query = query.filter(Destination.status == status)
        if region:
            query = query.filter(Destination.region == region)
        if category:
            query = query.filter(Destination.category == category)
        return query.order_by(Destination.name.asc()).all()

    def active_packages(self, destination_id: str) -> List[Package]:
        return (
            self.db.query(Package)
            .filter(Package.destination_id == destination_id, Package.status == PublishStatus.ACTIVE.value)
            .order_by(Package.created_at.desc())
            .all()
        )

    def create(self, data: Dict[str, Any], slug_candidates: Iterator[str]) -> Destination:
        return self.insert_with_unique_slug(lambda slug: Destination(slug=slug, **data), slug_candidates)

    def assign_packages(self, destination: Destination, package_ids: List[str]) -> None:
        """Replace the destination's package set (not committed)."""
        packages = self.db.query(Package).filter(Package.id.in_(package_ids)).all() if package_ids else []
        destination.packages = packages

    def count_active(self) -> int:
        return self.db.query(func.count(Destination.id)).filter(
            Destination.status == PublishStatus.ACTIVE.value
        ).scalar()

    def search(self, text: str, limit: int, active_only: bool = False) -> List[Destination]:
        pattern = f"%{text}%"
        query = self.db.query(Destination).filter(
            or_(
                Destination.name.ilike(pattern),
                Destination.location.ilike(pattern),
                Destination.country.ilike(pattern),
            )
        )
        if active_only:
            query = query.filter(Destination.status == PublishStatus.ACTIVE.value).order_by(
                Destination.featured.desc(), Destination.rating.desc()
            )
        return query.limit(limit).all()


class BlogPostRepository(Repository):
    model = BlogPost

    def filter_posts(
        self,
        published: Optional[bool] = None,
        featured: Optional[bool] = None,
        category: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[BlogPost]:
        query = self.db.query(BlogPost)
        if published is not None:
            query = query.filter(BlogPost.published.is_(published))
        if featured:
            query = query.filter(BlogPost.featured.is_(True))
        if category:
            query = query.filter(BlogPost.category == category)
        query = query.order_by(BlogPost.featured.desc(), BlogPost.published_at.desc(), BlogPost.created_at.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    def create(self, data: Dict[str, Any], slug_candidates: Iterator[str]) -> BlogPost:
        return self.insert_with_unique_slug(lambda slug: BlogPost(slug=slug, **data), slug_candidates)

    def increment_views(self, post: BlogPost) -> BlogPost:
        # Atomic increment in SQL so concurrent reads don't lose counts
        self.db.query(BlogPost).filter(BlogPost.id == post.id).update(
            {BlogPost.views: BlogPost.views + 1}, synchronize_session=False
        )
        self.db.commit()
        self.db.refresh(post)
        return post

    def count_published(self) -> int:
        return self.db.query(func.count(BlogPost.id)).filter(BlogPost.published.is_(True)).scalar()

    def search(self, text: str, limit: int) -> List[BlogPost]:
        pattern = f"%{text}%"
        return self.db.query(BlogPost).filter(
            or_(BlogPost.title.ilike(pattern), BlogPost.author.ilike(pattern), BlogPost.category.ilike(pattern))
        ).limit(limit).all()


class TestimonialRepository(Repository):
    model = Testimonial

    def page(
        self,
        status: Optional[str] = None,
        featured: Optional[bool] = None,
        newest_first: bool = False,
        limit: Optional[int] = None,
        page: Optional[int] = None,
    ) -> Tuple[List[Testimonial], int]:
        query = self.db.query(Testimonial)
        if status:
            query = query.filter(Testimonial.status == status)
        if featured:
            query = query.filter(Testimonial.featured.is_(True))
        total = query.count()

        if newest_first:
            query = query.order_by(Testimonial.created_at.desc())
        else:
            query = query.order_by(Testimonial.featured.desc(), Testimonial.created_at.desc())
        if limit:
            query = query.limit(limit)
            if page and page > 1:
                query = query.offset((page - 1) * limit)
        return query.all(), total

    def count_pending(self) -> int:
        return self.db.query(func.count(Testimonial.id)).filter(
            Testimonial.status == ApprovalStatus.PENDING.value
        ).scalar()

    def search(self, text: str, limit: int) -> List[Testimonial]:
        pattern = f"%{text}%"
        return self.db.query(Testimonial).filter(
            or_(Testimonial.name.ilike(pattern), Testimonial.location.ilike(pattern))
        ).limit(limit).all()


class ReviewRepository(Repository):
    model = Review

    def page(
        self,
        package_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 10,
        page: Optional[int] = None,
    ) -> Tuple[List[Review], int]:
        query = self.db.query(Review)
        if package_id:
            query = query.filter(Review.package_id == package_id)
        if status:
            query = query.filter(Review.status == status)
        total = query.count()
        query = query.order_by(Review.created_at.desc()).limit(limit)
        if page and page > 1:
            query = query.offset((page - 1) * limit)
        return query.all(), total

    def increment_helpful(self, review: Review) -> Review:
        self.db.query(Review).filter(Review.id == review.id).update(
            {Review.helpful: Review.helpful + 1}, synchronize_session=False
        )
        self.db.commit()
        self.db.refresh(review)
        return review

    def count_pending(self) -> int:
        return self.db.query(func.count(Review.id)).filter(Review.status == ApprovalStatus.PENDING.value).scalar()


class ContactInquiryRepository(Repository):
    model = ContactInquiry

    def filter_contacts(self, status: Optional[str] = None, inquiry_type: Optional[str] = None,
                        limit: Optional[int] = None) -> List[ContactInquiry]:
        query = self.db.query(ContactInquiry)
        if status:
            query = query.filter(ContactInquiry.status == status)
        if inquiry_type:
            query = query.filter(ContactInquiry.type == inquiry_type)
        query = query.order_by(ContactInquiry.created_at.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    def search(self, text: str, limit: int) -> List[ContactInquiry]:
        pattern = f"%{text}%"
        return self.db.query(ContactInquiry).filter(
            or_(
                ContactInquiry.name.ilike(pattern),
                ContactInquiry.email.ilike(pattern),
                ContactInquiry.subject.ilike(pattern),
            )
        ).order_by(ContactInquiry.created_at.desc()).limit(limit).all()


class PackageEnquiryRepository(Repository):
    model = PackageEnquiry

    def filter_enquiries(self, status: Optional[str] = None, package_id: Optional[str] = None) -> List[PackageEnquiry]:
        query = self.db.query(PackageEnquiry).options(selectinload(PackageEnquiry.package))
        if status:
            query = query.filter(PackageEnquiry.status == status)
        if package_id:
            query = query.filter(PackageEnquiry.package_id == package_id)
        return query.order_by(PackageEnquiry.created_at.desc()).all()

    def count_all(self) -> int:
        return self.db.query(func.count(PackageEnquiry.id)).scalar()

    def count_by_status(self, status: str) -> int:
        return self.db.query(func.count(PackageEnquiry.id)).filter(PackageEnquiry.status == status).scalar()

    def recent(self, limit: int = 5) -> List[PackageEnquiry]:
        return (
            self.db.query(PackageEnquiry)
            .options(selectinload(PackageEnquiry.package))
            .order_by(PackageEnquiry.created_at.desc())
            .limit(limit)
            .all()
        )

    def created_since(self, since: datetime) -> List[datetime]:
        rows = self.db.query(PackageEnquiry.created_at).filter(PackageEnquiry.created_at >= since).all()
        return [r[0] for r in rows]

    def search(self, text: str, limit: int) -> List[PackageEnquiry]:
        pattern = f"%{text}%"
        return (
            self.db.query(PackageEnquiry)
            .options(selectinload(PackageEnquiry.package))
            .filter(
                or_(
                    PackageEnquiry.name.ilike(pattern),
                    PackageEnquiry.email.ilike(pattern),
                    PackageEnquiry.phone.ilike(pattern),
                )
            )
            .order_by(PackageEnquiry.created_at.desc())
            .limit(limit)
            .all()
        )


class SiteSettingsRepository(Repository):
    model = SiteSettings

    def _get(self) -> Optional[SiteSettings]:
        return self.db.query(SiteSettings).filter(SiteSettings.singleton_key == SETTINGS_SINGLETON_KEY).first()

    def get_or_create(self) -> SiteSettings:
        """
        Return the settings row, creating it with defaults when absent.

        Creation is an INSERT .. ON CONFLICT DO NOTHING on the unique
        singleton key, so concurrent first reads end up with one row.
        """
        existing = self._get()
        if existing is not None:
            return existing

        dialect = self.db.get_bind().dialect.name
        values = {"singleton_key": SETTINGS_SINGLETON_KEY, **DEFAULT_SITE_SETTINGS}
        if dialect in ("sqlite", "postgresql"):
            if dialect == "sqlite":
                from sqlalchemy.dialects.sqlite import insert
            else:
                from sqlalchemy.dialects.postgresql import insert
            stmt = insert(SiteSettings).values(**values).on_conflict_do_nothing(index_elements=["singleton_key"])
            self.db.execute(stmt)
            self.db.commit()
        else:
            self.db.add(SiteSettings(**values))
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()

        created = self._get()
        logger.info("Site settings initialised with defaults")
        return created


class UserRepository(Repository):
    model = User

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(func.lower(User.email) == email.lower()).first()

    def first_admin(self) -> Optional[User]:
        return self.db.query(User).filter(User.role == Role.ADMIN.value).first()
