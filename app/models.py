from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DECIMAL,
    Date,
    DateTime,
    Float,
    ForeignKey,
    ForeignKeyConstraint,
    Index,
    Integer,
    JSON,
    LargeBinary,
    SmallInteger,
    String,
    Table,
    Text,
    Time,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

Base = declarative_base()
metadata = Base.metadata

USER_TYPES = ("client", "artist", "studio")
BOOKING_STATUSES = ("pending", "confirmed", "completed", "cancelled")
ACTIVE_BOOKING_STATUSES = ("pending", "confirmed")


t_design_styles = Table(
    "design_styles",
    metadata,
    Column("id", Integer, primary_key=True),
    Column(
        "design_id",
        Integer,
        ForeignKey("designs.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "style_id", Integer, ForeignKey("styles.id", ondelete="CASCADE"), nullable=False
    ),
    Column("created_at", DateTime, server_default=text("CURRENT_TIMESTAMP")),
    UniqueConstraint("design_id", "style_id", name="uq_design_style"),
)


t_design_tags = Table(
    "design_tags",
    metadata,
    Column("id", Integer, primary_key=True),
    Column(
        "design_id",
        Integer,
        ForeignKey("designs.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), nullable=False),
    Column("created_at", DateTime, server_default=text("CURRENT_TIMESTAMP")),
    UniqueConstraint("design_id", "tag_id", name="uq_design_tag"),
)


class Profile(Base):
    __tablename__ = "profiles"
    __table_args__ = (Index("ix_profiles_email", "email", unique=True),)

    id = mapped_column(Integer, primary_key=True)
    email = mapped_column(String(255), nullable=False)
    password_hash = mapped_column(LargeBinary(72))
    full_name = mapped_column(String(200))
    avatar_url = mapped_column(String(500))
    phone = mapped_column(String(50))
    user_type = mapped_column(String(20))
    is_admin = mapped_column(Boolean, nullable=False, default=False)
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at = mapped_column(DateTime)

    client_profile: Mapped[Optional["ClientProfile"]] = relationship(
        "ClientProfile", uselist=False, back_populates="profile"
    )
    artist_profile: Mapped[Optional["ArtistProfile"]] = relationship(
        "ArtistProfile", uselist=False, back_populates="profile"
    )
    studios: Mapped[List["Studio"]] = relationship(
        "Studio", uselist=True, back_populates="creator"
    )


class ClientProfile(Base):
    __tablename__ = "client_profiles"

    id = mapped_column(
        Integer, ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    address = mapped_column(String(255))
    city = mapped_column(String(100))
    state = mapped_column(String(100))
    postal_code = mapped_column(String(20))
    country = mapped_column(String(100))
    preferences = mapped_column(JSON)
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at = mapped_column(DateTime)

    profile: Mapped["Profile"] = relationship("Profile", back_populates="client_profile")
    bookings: Mapped[List["Booking"]] = relationship(
        "Booking", uselist=True, back_populates="client"
    )
    favorites: Mapped[List["Favorite"]] = relationship(
        "Favorite", uselist=True, back_populates="client"
    )


class Studio(Base):
    __tablename__ = "studios"
    __table_args__ = (Index("ix_studios_city", "city"),)

    id = mapped_column(Integer, primary_key=True)
    name = mapped_column(String(200), nullable=False)
    description = mapped_column(Text)
    address = mapped_column(String(255))
    city = mapped_column(String(100))
    state = mapped_column(String(100))
    postal_code = mapped_column(String(20))
    country = mapped_column(String(100))
    latitude = mapped_column(Float)
    longitude = mapped_column(Float)
    contact_email = mapped_column(String(255))
    contact_phone = mapped_column(String(50))
    website = mapped_column(String(255))
    instagram_handle = mapped_column(String(100))
    logo_url = mapped_column(String(500))
    banner_url = mapped_column(String(500))
    is_verified = mapped_column(Boolean, nullable=False, default=False)
    created_by = mapped_column(Integer, ForeignKey("profiles.id", ondelete="SET NULL"))
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at = mapped_column(DateTime)

    creator: Mapped[Optional["Profile"]] = relationship(
        "Profile", back_populates="studios"
    )
    studio_artists: Mapped[List["StudioArtist"]] = relationship(
        "StudioArtist", uselist=True, back_populates="studio"
    )
    designs: Mapped[List["Design"]] = relationship(
        "Design", uselist=True, back_populates="studio"
    )


class ArtistProfile(Base):
    __tablename__ = "artist_profiles"

    id = mapped_column(
        Integer, ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    artist_name = mapped_column(String(200))
    bio = mapped_column(Text)
    years_experience = mapped_column(Integer)
    portfolio_url = mapped_column(String(500))
    instagram_handle = mapped_column(String(100))
    commission_rate = mapped_column(DECIMAL(5, 2))
    city = mapped_column(String(100))
    state = mapped_column(String(100))
    postal_code = mapped_column(String(20))
    country = mapped_column(String(100))
    latitude = mapped_column(Float)
    longitude = mapped_column(Float)
    is_independent = mapped_column(Boolean, nullable=False, default=True)
    availability_notice = mapped_column(Text)
    primary_studio_id = mapped_column(
        Integer, ForeignKey("studios.id", ondelete="SET NULL")
    )
    average_rating = mapped_column(DECIMAL(3, 2))
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at = mapped_column(DateTime)

    profile: Mapped["Profile"] = relationship("Profile", back_populates="artist_profile")
    primary_studio: Mapped[Optional["Studio"]] = relationship("Studio")
    designs: Mapped[List["Design"]] = relationship(
        "Design", uselist=True, back_populates="artist"
    )
    availability: Mapped[List["ArtistAvailability"]] = relationship(
        "ArtistAvailability",
        uselist=True,
        back_populates="artist",
        cascade="all, delete-orphan",
    )
    time_blocks: Mapped[List["ArtistTimeBlock"]] = relationship(
        "ArtistTimeBlock", uselist=True, back_populates="artist"
    )
    memberships: Mapped[List["StudioArtist"]] = relationship(
        "StudioArtist", uselist=True, back_populates="artist"
    )


class StudioArtist(Base):
    __tablename__ = "studio_artists"
    __table_args__ = (
        UniqueConstraint("studio_id", "artist_id", name="uq_studio_artist"),
    )

    id = mapped_column(Integer, primary_key=True)
    studio_id = mapped_column(
        Integer, ForeignKey("studios.id", ondelete="CASCADE"), nullable=False
    )
    artist_id = mapped_column(
        Integer, ForeignKey("artist_profiles.id", ondelete="CASCADE"), nullable=False
    )
    role = mapped_column(String(50))
    is_active = mapped_column(Boolean, nullable=False, default=True)
    start_date = mapped_column(Date)
    end_date = mapped_column(Date)
    commission_split = mapped_column(DECIMAL(5, 2))
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at = mapped_column(DateTime)

    studio: Mapped["Studio"] = relationship("Studio", back_populates="studio_artists")
    artist: Mapped["ArtistProfile"] = relationship(
        "ArtistProfile", back_populates="memberships"
    )


class Style(Base):
    __tablename__ = "styles"
    __table_args__ = (Index("ix_styles_name", "name", unique=True),)

    id = mapped_column(Integer, primary_key=True)
    name = mapped_column(String(100), nullable=False)
    description = mapped_column(Text)
    image_url = mapped_column(String(500))
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at = mapped_column(DateTime)

    designs: Mapped[List["Design"]] = relationship(
        "Design", secondary=t_design_styles, back_populates="styles"
    )


class Tag(Base):
    __tablename__ = "tags"
    __table_args__ = (Index("ix_tags_name", "name", unique=True),)

    id = mapped_column(Integer, primary_key=True)
    name = mapped_column(String(100), nullable=False)
    category = mapped_column(String(100))
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    designs: Mapped[List["Design"]] = relationship(
        "Design", secondary=t_design_tags, back_populates="tags"
    )


class Design(Base):
    __tablename__ = "designs"
    __table_args__ = (
        Index("ix_designs_artist_id", "artist_id"),
        Index("ix_designs_studio_id", "studio_id"),
    )

    id = mapped_column(Integer, primary_key=True)
    artist_id = mapped_column(
        Integer, ForeignKey("artist_profiles.id", ondelete="CASCADE"), nullable=False
    )
    studio_id = mapped_column(Integer, ForeignKey("studios.id", ondelete="SET NULL"))
    title = mapped_column(String(200), nullable=False)
    description = mapped_column(Text)
    base_price = mapped_column(DECIMAL(10, 2))
    deposit_amount = mapped_column(DECIMAL(10, 2))
    is_available = mapped_column(Boolean, nullable=False, default=True)
    is_flash = mapped_column(Boolean, nullable=False, default=False)
    is_custom = mapped_column(Boolean, nullable=False, default=False)
    is_color = mapped_column(Boolean, nullable=False, default=False)
    size = mapped_column(String(50))
    placement = mapped_column(String(100))
    estimated_hours = mapped_column(Float)
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at = mapped_column(DateTime)

    artist: Mapped["ArtistProfile"] = relationship(
        "ArtistProfile", back_populates="designs"
    )
    studio: Mapped[Optional["Studio"]] = relationship("Studio", back_populates="designs")
    images: Mapped[List["DesignImage"]] = relationship(
        "DesignImage",
        uselist=True,
        back_populates="design",
        order_by="DesignImage.order_index",
        cascade="all, delete-orphan",
    )
    styles: Mapped[List["Style"]] = relationship(
        "Style", secondary=t_design_styles, back_populates="designs"
    )
    tags: Mapped[List["Tag"]] = relationship(
        "Tag", secondary=t_design_tags, back_populates="designs"
    )


class DesignImage(Base):
    __tablename__ = "design_images"

    id = mapped_column(Integer, primary_key=True)
    design_id = mapped_column(
        Integer, ForeignKey("designs.id", ondelete="CASCADE"), nullable=False
    )
    image_url = mapped_column(String(500), nullable=False)
    storage_path = mapped_column(String(500))
    is_primary = mapped_column(Boolean, nullable=False, default=False)
    order_index = mapped_column(Integer, nullable=False, default=0)
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    design: Mapped["Design"] = relationship("Design", back_populates="images")


class ArtistAvailability(Base):
    __tablename__ = "artist_availability"
    __table_args__ = (
        Index("ix_artist_availability_artist_weekday", "artist_id", "weekday"),
    )

    id = mapped_column(Integer, primary_key=True)
    artist_id = mapped_column(
        Integer, ForeignKey("artist_profiles.id", ondelete="CASCADE"), nullable=False
    )
    # 0 = Sunday ... 6 = Saturday
    weekday = mapped_column(SmallInteger, nullable=False)
    start_time = mapped_column(Time, nullable=False)
    end_time = mapped_column(Time, nullable=False)
    effective_from = mapped_column(Date)
    effective_to = mapped_column(Date)

    artist: Mapped["ArtistProfile"] = relationship(
        "ArtistProfile", back_populates="availability"
    )


class ArtistTimeBlock(Base):
    __tablename__ = "artist_time_blocks"

    id = mapped_column(Integer, primary_key=True)
    artist_id = mapped_column(
        Integer, ForeignKey("artist_profiles.id", ondelete="CASCADE"), nullable=False
    )
    start_at = mapped_column(DateTime, nullable=False)
    end_at = mapped_column(DateTime, nullable=False)
    reason = mapped_column(String(255))
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    artist: Mapped["ArtistProfile"] = relationship(
        "ArtistProfile", back_populates="time_blocks"
    )


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        ForeignKeyConstraint(
            ["previous_booking_id"],
            ["bookings.id"],
            ondelete="SET NULL",
            name="fk_bookings_previous_booking",
        ),
        Index("ix_bookings_artist_date", "artist_id", "booking_date"),
        Index("ix_bookings_client_id", "client_id"),
    )

    id = mapped_column(Integer, primary_key=True)
    client_id = mapped_column(
        Integer, ForeignKey("client_profiles.id", ondelete="CASCADE"), nullable=False
    )
    artist_id = mapped_column(
        Integer, ForeignKey("artist_profiles.id", ondelete="CASCADE"), nullable=False
    )
    studio_id = mapped_column(Integer, ForeignKey("studios.id", ondelete="SET NULL"))
    design_id = mapped_column(Integer, ForeignKey("designs.id", ondelete="SET NULL"))
    booking_date = mapped_column(Date, nullable=False)
    start_time = mapped_column(Time, nullable=False)
    end_time = mapped_column(Time, nullable=False)
    status = mapped_column(String(20), nullable=False, default="pending")
    total_price = mapped_column(DECIMAL(10, 2))
    deposit_amount = mapped_column(DECIMAL(10, 2))
    notes = mapped_column(Text)
    cancellation_reason = mapped_column(String(255))
    cancelled_by = mapped_column(Integer, ForeignKey("profiles.id", ondelete="SET NULL"))
    cancelled_at = mapped_column(DateTime)
    is_rescheduled = mapped_column(Boolean, nullable=False, default=False)
    previous_booking_id = mapped_column(Integer)
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at = mapped_column(DateTime)

    client: Mapped["ClientProfile"] = relationship(
        "ClientProfile", back_populates="bookings"
    )
    artist: Mapped["ArtistProfile"] = relationship("ArtistProfile")
    studio: Mapped[Optional["Studio"]] = relationship("Studio")
    design: Mapped[Optional["Design"]] = relationship("Design")
    payments: Mapped[List["BookingPayment"]] = relationship(
        "BookingPayment", uselist=True, back_populates="booking"
    )


class BookingPayment(Base):
    __tablename__ = "booking_payments"
    __table_args__ = (
        Index("ix_booking_payments_intent", "payment_intent_id", unique=True),
    )

    id = mapped_column(Integer, primary_key=True)
    booking_id = mapped_column(
        Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False
    )
    amount = mapped_column(DECIMAL(10, 2), nullable=False)
    payment_intent_id = mapped_column(String(100), nullable=False)
    provider = mapped_column(String(50), nullable=False, default="simulated")
    status = mapped_column(String(20), nullable=False, default="succeeded")
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    refunded_at = mapped_column(DateTime)

    booking: Mapped["Booking"] = relationship("Booking", back_populates="payments")


class Favorite(Base):
    __tablename__ = "favorites"
    __table_args__ = (
        UniqueConstraint("client_id", "design_id", name="uq_favorite_design"),
        UniqueConstraint("client_id", "artist_id", name="uq_favorite_artist"),
        UniqueConstraint("client_id", "studio_id", name="uq_favorite_studio"),
    )

    id = mapped_column(Integer, primary_key=True)
    client_id = mapped_column(
        Integer, ForeignKey("client_profiles.id", ondelete="CASCADE"), nullable=False
    )
    design_id = mapped_column(Integer, ForeignKey("designs.id", ondelete="CASCADE"))
    artist_id = mapped_column(
        Integer, ForeignKey("artist_profiles.id", ondelete="CASCADE")
    )
    studio_id = mapped_column(Integer, ForeignKey("studios.id", ondelete="CASCADE"))
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    client: Mapped["ClientProfile"] = relationship(
        "ClientProfile", back_populates="favorites"
    )
    design: Mapped[Optional["Design"]] = relationship("Design")
    artist: Mapped[Optional["ArtistProfile"]] = relationship("ArtistProfile")
    studio: Mapped[Optional["Studio"]] = relationship("Studio")


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        Index("ix_reviews_artist_id", "artist_id"),
        Index("ix_reviews_studio_id", "studio_id"),
    )

    id = mapped_column(Integer, primary_key=True)
    client_id = mapped_column(
        Integer, ForeignKey("client_profiles.id", ondelete="CASCADE"), nullable=False
    )
    artist_id = mapped_column(
        Integer, ForeignKey("artist_profiles.id", ondelete="CASCADE")
    )
    studio_id = mapped_column(Integer, ForeignKey("studios.id", ondelete="CASCADE"))
    design_id = mapped_column(Integer, ForeignKey("designs.id", ondelete="CASCADE"))
    booking_id = mapped_column(Integer, ForeignKey("bookings.id", ondelete="SET NULL"))
    rating = mapped_column(SmallInteger, nullable=False)
    review_text = mapped_column(Text)
    response_text = mapped_column(Text)
    responded_at = mapped_column(DateTime)
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    client: Mapped["ClientProfile"] = relationship("ClientProfile")
