"""
Database models -- SQLAlchemy ORM definitions.
Compatible with both PostgreSQL and SQLite.

Primary keys are string UUIDs so a single path segment can carry either an
id or a slug. Slugs, user emails and the settings singleton key are unique
at the storage layer.
"""

from datetime import datetime
from enum import Enum
import uuid

from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON, String, Table, Text,
)
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import declarative_base, relationship


class _Serializable:
    """Column-only dict view used for JSON responses."""

    def to_dict(self, exclude=()) -> dict:
        mapper = sa_inspect(self).mapper
        return {
            attr.key: getattr(self, attr.key)
            for attr in mapper.column_attrs
            if attr.key not in exclude
        }


Base = declarative_base(cls=_Serializable)


def _uuid() -> str:
    return str(uuid.uuid4())


class Role(str, Enum):
    ADMIN = "ADMIN"
    USER = "USER"


class PublishStatus(str, Enum):
    """Visibility of packages and destinations."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class ApprovalStatus(str, Enum):
    """Moderation state of testimonials and reviews."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class InquiryStatus(str, Enum):
    NEW = "NEW"
    CONTACTED = "CONTACTED"
    IN_PROGRESS = "IN_PROGRESS"
    CLOSED = "CLOSED"


class TimestampMixin:
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200))
    email = Column(String(320), unique=True, nullable=False, index=True)
    password = Column(String(200), nullable=False)
    role = Column(String(20), nullable=False, default=Role.USER.value, index=True)

    def to_dict(self, exclude=("password",)) -> dict:
        return super().to_dict(exclude=exclude)


package_accommodations = Table(
    "package_accommodations",
    Base.metadata,
    Column("package_id", String(36), ForeignKey("packages.id", ondelete="CASCADE"), primary_key=True),
    Column("accommodation_id", String(36), ForeignKey("accommodations.id", ondelete="CASCADE"), primary_key=True),
)


class Destination(TimestampMixin, Base):
    __tablename__ = "destinations"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False, index=True)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    location = Column(String(200))
    country = Column(String(100), default="India")
    region = Column(String(50), default="INDIA", index=True)
    category = Column(String(50), default="MOUNTAIN", index=True)
    image = Column(Text)
    images = Column(JSON, default=list)
    description = Column(Text)
    highlights = Column(JSON, default=list)
    best_time = Column(String(200))
    rating = Column(Float, default=0)
    featured = Column(Boolean, default=False, nullable=False)
    status = Column(String(20), default=PublishStatus.ACTIVE.value, nullable=False, index=True)

    packages = relationship("Package", back_populates="destination")


class Accommodation(TimestampMixin, Base):
    __tablename__ = "accommodations"

    id = Column(String(36), primary_key=True, default=_uuid)
    destination_id = Column(String(36), ForeignKey("destinations.id", ondelete="SET NULL"), nullable=True)
    hotel_name = Column(String(200), nullable=False)
    room_type = Column(String(100))
    hotel_category = Column(String(100))
    nights = Column(Integer, default=1, nullable=False)


class Package(TimestampMixin, Base):
    """Holiday package. ``destination_name`` is a denormalised display name."""
    __tablename__ = "packages"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False, index=True)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    destination_id = Column(String(36), ForeignKey("destinations.id", ondelete="SET NULL"), nullable=True, index=True)
    destination_name = Column(String(200))
    location = Column(String(200))
    country = Column(String(100), default="India")
    image = Column(Text)
    images = Column(JSON, default=list)
    price = Column(Float, nullable=False, default=0)
    original_price = Column(Float)
    duration = Column(String(100))
    group_size = Column(String(100))
    rating = Column(Float, default=0)
    reviews = Column(Integer, default=0)
    description = Column(Text)
    highlights = Column(JSON, default=list)
    inclusions = Column(JSON, default=list)
    exclusions = Column(JSON, default=list)
    itinerary = Column(JSON)
    faqs = Column(JSON)
    policies = Column(JSON)
    best_time = Column(String(200))
    difficulty = Column(String(20), default="EASY")
    type = Column(String(20), default="PREMIUM", index=True)
    badge = Column(String(100))
    featured = Column(Boolean, default=False, nullable=False, index=True)
    status = Column(String(20), default=PublishStatus.ACTIVE.value, nullable=False, index=True)

    destination = relationship("Destination", back_populates="packages")
    accommodations = relationship("Accommodation", secondary=package_accommodations)
    package_reviews = relationship("Review", back_populates="package", cascade="all, delete-orphan")
    enquiries = relationship("PackageEnquiry", back_populates="package")


class BlogPost(TimestampMixin, Base):
    __tablename__ = "blog_posts"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    excerpt = Column(Text)
    content = Column(Text)
    image = Column(Text)
    author = Column(String(200))
    category = Column(String(100), index=True)
    tags = Column(JSON, default=list)
    featured = Column(Boolean, default=False, nullable=False)
    published = Column(Boolean, default=False, nullable=False, index=True)
    published_at = Column(DateTime, nullable=True)
    read_time = Column(String(50))
    views = Column(Integer, default=0, nullable=False)


class Testimonial(TimestampMixin, Base):
    __tablename__ = "testimonials"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)
    email = Column(String(320))
    location = Column(String(200), default="")
    rating = Column(Integer, default=5, nullable=False)
    comment = Column(Text, nullable=False)
    image = Column(Text)
    package_id = Column(String(36), ForeignKey("packages.id", ondelete="SET NULL"), nullable=True)
    trip_date = Column(String(100))
    featured = Column(Boolean, default=False, nullable=False)
    status = Column(String(20), default=ApprovalStatus.PENDING.value, nullable=False, index=True)


class Review(TimestampMixin, Base):
    """Package review left by a traveller; moderated before it is shown."""
    __tablename__ = "reviews"

    id = Column(String(36), primary_key=True, default=_uuid)
    package_id = Column(String(36), ForeignKey("packages.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    email = Column(String(320))
    location = Column(String(200))
    rating = Column(Integer, nullable=False)
    title = Column(String(255))
    comment = Column(Text, nullable=False)
    images = Column(JSON, default=list)
    verified = Column(Boolean, default=False, nullable=False)
    helpful = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default=ApprovalStatus.PENDING.value, nullable=False, index=True)

    package = relationship("Package", back_populates="package_reviews")


class ContactInquiry(TimestampMixin, Base):
    __tablename__ = "contact_inquiries"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)
    email = Column(String(320), nullable=False)
    phone = Column(String(50))
    subject = Column(String(255), default="Travel Consultation")
    message = Column(Text, nullable=False)
    type = Column(String(50), default="CONTACT", index=True)
    destination = Column(String(200))
    travel_date = Column(String(100))
    travelers = Column(String(100))
    budget = Column(String(100))
    hotel_type = Column(String(100))
    group_size = Column(String(100))
    special_requirements = Column(Text)
    status = Column(String(20), default=InquiryStatus.NEW.value, nullable=False, index=True)
    notes = Column(Text)


class PackageEnquiry(TimestampMixin, Base):
    __tablename__ = "package_enquiries"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)
    email = Column(String(320), nullable=False)
    phone = Column(String(50), nullable=False)
    package_id = Column(String(36), ForeignKey("packages.id", ondelete="SET NULL"), nullable=True, index=True)
    package_name = Column(String(255))
    travel_date = Column(DateTime, nullable=True)
    travel_time = Column(String(50))
    adults = Column(Integer, default=1, nullable=False)
    children = Column(Integer, default=0, nullable=False)
    rooms = Column(Integer, default=1, nullable=False)
    message = Column(Text)
    status = Column(String(20), default=InquiryStatus.NEW.value, nullable=False, index=True)
    notes = Column(Text)

    package = relationship("Package", back_populates="enquiries")


SETTINGS_SINGLETON_KEY = "default"

DEFAULT_SITE_SETTINGS = {
    "company_name": "Thapa Holidays",
    "tagline": "Discover Amazing Places",
    "phone": "+91 9002660557",
    "phone2": "+91 8617410057",
    "whatsapp": "+919002660557",
    "email": "thapa.holidays09@gmail.com",
    "support_email": "thapa.holidays09@gmail.com",
    "address": "Vastu Vihar, Near Steel Factory, Panchkulgari\nP.O. Matigara, Dist Darjeeling, Pin: 734010",
    "emergency_phone": "+91 9002660557",
    "website": "https://thapaholidays.com",
    "description": (
        "Your trusted travel partner for over 15 years. We create unforgettable experiences "
        "and help you discover the incredible beauty of India and beyond."
    ),
    "facebook": "https://facebook.com/thapaholidays",
    "instagram": "https://instagram.com/thapaholidays",
    "twitter": "https://twitter.com/thapaholidays",
    "youtube": "https://youtube.com/thapaholidays",
}


class SiteSettings(TimestampMixin, Base):
    """Single row of site-wide settings, keyed by a unique singleton marker."""
    __tablename__ = "site_settings"

    id = Column(String(36), primary_key=True, default=_uuid)
    singleton_key = Column(String(20), unique=True, nullable=False, default=SETTINGS_SINGLETON_KEY)
    company_name = Column(String(200))
    tagline = Column(String(255))
    phone = Column(String(50))
    phone2 = Column(String(50))
    whatsapp = Column(String(50))
    email = Column(String(320))
    support_email = Column(String(320))
    address = Column(Text)
    emergency_phone = Column(String(50))
    website = Column(String(255))
    description = Column(Text)
    facebook = Column(String(255))
    instagram = Column(String(255))
    twitter = Column(String(255))
    youtube = Column(String(255))

    def to_dict(self, exclude=("singleton_key",)) -> dict:
        return super().to_dict(exclude=exclude)
