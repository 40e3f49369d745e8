"""
Request bodies.

Create models leave "required" fields optional so the handlers can answer
with the same 400 messages whatever is missing; update models are applied
with ``model_dump(exclude_unset=True)`` so only provided fields change.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class _Body(BaseModel):
    model_config = ConfigDict(extra="ignore")


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class LoginRequest(_Body):
    email: str
    password: str


# ---------------------------------------------------------------------------
# Packages
# ---------------------------------------------------------------------------

class AccommodationIn(_Body):
    hotel_name: str
    room_type: Optional[str] = None
    hotel_category: Optional[str] = None
    nights: Optional[int] = 1
    destination_id: Optional[str] = None


class PackageFields(_Body):
    destination_id: Optional[str] = None
    destination_name: Optional[str] = None
    location: Optional[str] = None
    country: Optional[str] = None
    image: Optional[str] = None
    images: Optional[List[str]] = None
    price: Optional[float] = None
    original_price: Optional[float] = None
    duration: Optional[str] = None
    group_size: Optional[str] = None
    description: Optional[str] = None
    highlights: Optional[List[str]] = None
    inclusions: Optional[List[str]] = None
    exclusions: Optional[List[str]] = None
    itinerary: Optional[Any] = None
    faqs: Optional[Any] = None
    policies: Optional[Any] = None
    best_time: Optional[str] = None
    difficulty: Optional[str] = None
    type: Optional[str] = None
    badge: Optional[str] = None
    featured: Optional[bool] = None
    status: Optional[str] = None


class PackageCreate(PackageFields):
    name: Optional[str] = None
    accommodations: Optional[List[AccommodationIn]] = None


class PackageUpdate(PackageFields):
    name: Optional[str] = None
    rating: Optional[float] = None


# ---------------------------------------------------------------------------
# Destinations
# ---------------------------------------------------------------------------

class DestinationFields(_Body):
    location: Optional[str] = None
    country: Optional[str] = None
    region: Optional[str] = None
    image: Optional[str] = None
    images: Optional[List[str]] = None
    description: Optional[str] = None
    highlights: Optional[List[str]] = None
    category: Optional[str] = None
    best_time: Optional[str] = None
    featured: Optional[bool] = None
    status: Optional[str] = None


class DestinationCreate(DestinationFields):
    name: Optional[str] = None


class DestinationUpdate(DestinationFields):
    name: Optional[str] = None
    rating: Optional[float] = None
    package_ids: Optional[List[str]] = None


# ---------------------------------------------------------------------------
# Blog
# ---------------------------------------------------------------------------

class BlogPostFields(_Body):
    excerpt: Optional[str] = None
    content: Optional[str] = None
    image: Optional[str] = None
    author: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    featured: Optional[bool] = None
    published: Optional[bool] = None
    read_time: Optional[str] = None


class BlogPostCreate(BlogPostFields):
    title: Optional[str] = None


class BlogPostUpdate(BlogPostFields):
    title: Optional[str] = None
    published_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Testimonials & reviews
# ---------------------------------------------------------------------------

class TestimonialCreate(_Body):
    name: Optional[str] = None
    email: Optional[str] = None
    location: Optional[str] = None
    rating: Optional[int] = None
    comment: Optional[str] = None
    image: Optional[str] = None
    package_id: Optional[str] = None
    trip_date: Optional[str] = None
    featured: Optional[bool] = None
    status: Optional[str] = None
    is_admin: Optional[bool] = None


class ModerationUpdate(_Body):
    id: Optional[str] = None
    status: Optional[str] = None
    featured: Optional[bool] = None
    verified: Optional[bool] = None


class ReviewCreate(_Body):
    package_id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    location: Optional[str] = None
    rating: Optional[int] = None
    title: Optional[str] = None
    comment: Optional[str] = None
    images: Optional[List[str]] = None


class ReviewAction(_Body):
    id: Optional[str] = None
    action: Optional[str] = None


# ---------------------------------------------------------------------------
# Inquiries
# ---------------------------------------------------------------------------

class ContactCreate(_Body):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None
    type: Optional[str] = None
    destination: Optional[str] = None
    travel_date: Optional[str] = None
    travelers: Optional[str] = None
    budget: Optional[str] = None
    hotel_type: Optional[str] = None
    group_size: Optional[str] = None
    special_requirements: Optional[str] = None


class EnquiryCreate(_Body):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    package_id: Optional[str] = None
    package_name: Optional[str] = None
    travel_date: Optional[str] = None
    travel_time: Optional[str] = None
    adults: Optional[Any] = None
    children: Optional[Any] = None
    rooms: Optional[Any] = None
    message: Optional[str] = None


class InquiryUpdate(_Body):
    status: Optional[str] = None
    notes: Optional[str] = None


# ---------------------------------------------------------------------------
# Settings & media
# ---------------------------------------------------------------------------

class SiteSettingsUpdate(_Body):
    company_name: Optional[str] = None
    tagline: Optional[str] = None
    phone: Optional[str] = None
    phone2: Optional[str] = None
    whatsapp: Optional[str] = None
    email: Optional[str] = None
    support_email: Optional[str] = None
    address: Optional[str] = None
    emergency_phone: Optional[str] = None
    website: Optional[str] = None
    description: Optional[str] = None
    facebook: Optional[str] = None
    instagram: Optional[str] = None
    twitter: Optional[str] = None
    youtube: Optional[str] = None


class MediaUpload(_Body):
    file: Optional[str] = None
    folder: Optional[str] = None


def provided(body: BaseModel, exclude=()) -> Dict[str, Any]:
    """Fields the caller actually sent."""
    return {k: v for k, v in body.model_dump(exclude_unset=True).items() if k not in exclude}
