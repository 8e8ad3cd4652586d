"""JSON shapes for the models returned by more than one blueprint."""

from app.utils.formatting import get_initials, money, truncate_text

SUMMARY_LENGTH = 140


def _iso(value):
    return value.isoformat() if value is not None else None


def primary_image_url(design):
    if not design.images:
        return None
    primary = next((img for img in design.images if img.is_primary), design.images[0])
    return primary.image_url


def artist_display_name(artist):
    if artist is None:
        return None
    if artist.artist_name:
        return artist.artist_name
    return artist.profile.full_name if artist.profile else None


def serialize_design(design, detail=False):
    studio = design.studio
    artist = design.artist
    data = {
        "id": design.id,
        "title": design.title,
        "description": design.description,
        "summary": truncate_text(design.description, SUMMARY_LENGTH) if design.description else None,
        "base_price": money(design.base_price),
        "deposit_amount": money(design.deposit_amount),
        "is_available": design.is_available,
        "is_flash": design.is_flash,
        "is_custom": design.is_custom,
        "is_color": design.is_color,
        "size": design.size,
        "placement": design.placement,
        "estimated_hours": design.estimated_hours,
        "artist_id": design.artist_id,
        "artist_name": artist_display_name(artist),
        "studio_id": design.studio_id,
        "studio_name": studio.name if studio else None,
        "city": studio.city if studio else (artist.city if artist else None),
        "state": studio.state if studio else (artist.state if artist else None),
        "country": studio.country if studio else (artist.country if artist else None),
        "primary_image_url": primary_image_url(design),
        "styles": [s.name for s in design.styles],
        "tags": [t.name for t in design.tags],
        "created_at": _iso(design.created_at),
    }
    if detail:
        data["images"] = [
            {
                "id": img.id,
                "image_url": img.image_url,
                "is_primary": img.is_primary,
                "order_index": img.order_index,
            }
            for img in design.images
        ]
        data["style_ids"] = [s.id for s in design.styles]
        data["tag_ids"] = [t.id for t in design.tags]
    return data


def serialize_artist(artist):
    profile = artist.profile
    studio = artist.primary_studio
    return {
        "id": artist.id,
        "artist_name": artist.artist_name,
        "full_name": profile.full_name if profile else None,
        "avatar_url": profile.avatar_url if profile else None,
        # shown in place of a missing avatar
        "initials": get_initials(artist.artist_name),
        "bio": artist.bio,
        "years_experience": artist.years_experience,
        "portfolio_url": artist.portfolio_url,
        "instagram_handle": artist.instagram_handle,
        "city": artist.city,
        "state": artist.state,
        "country": artist.country,
        "is_independent": artist.is_independent,
        "availability_notice": artist.availability_notice,
        "primary_studio_id": artist.primary_studio_id,
        "primary_studio_name": studio.name if studio else None,
        "average_rating": money(artist.average_rating),
    }


def serialize_studio(studio, artist_count=None):
    if artist_count is None:
        artist_count = len([m for m in studio.studio_artists if m.is_active])
    return {
        "id": studio.id,
        "name": studio.name,
        "description": studio.description,
        "address": studio.address,
        "city": studio.city,
        "state": studio.state,
        "postal_code": studio.postal_code,
        "country": studio.country,
        "latitude": studio.latitude,
        "longitude": studio.longitude,
        "contact_email": studio.contact_email,
        "contact_phone": studio.contact_phone,
        "website": studio.website,
        "instagram_handle": studio.instagram_handle,
        "logo_url": studio.logo_url,
        "banner_url": studio.banner_url,
        "is_verified": studio.is_verified,
        "created_by": studio.created_by,
        "artist_count": artist_count,
    }


def serialize_booking(booking):
    payment = booking.payments[0] if booking.payments else None
    return {
        "id": booking.id,
        "client_id": booking.client_id,
        "artist_id": booking.artist_id,
        "artist_name": artist_display_name(booking.artist),
        "studio_id": booking.studio_id,
        "studio_name": booking.studio.name if booking.studio else None,
        "design_id": booking.design_id,
        "design_title": booking.design.title if booking.design else None,
        "booking_date": _iso(booking.booking_date),
        "start_time": _iso(booking.start_time),
        "end_time": _iso(booking.end_time),
        "status": booking.status,
        "total_price": money(booking.total_price),
        "deposit_amount": money(booking.deposit_amount),
        "notes": booking.notes,
        "cancellation_reason": booking.cancellation_reason,
        "cancelled_by": booking.cancelled_by,
        "cancelled_at": _iso(booking.cancelled_at),
        "is_rescheduled": booking.is_rescheduled,
        "previous_booking_id": booking.previous_booking_id,
        "payment": (
            {
                "payment_intent_id": payment.payment_intent_id,
                "amount": money(payment.amount),
                "provider": payment.provider,
                "status": payment.status,
                "refunded_at": _iso(payment.refunded_at),
            }
            if payment
            else None
        ),
        "created_at": _iso(booking.created_at),
    }


def serialize_review(review):
    client_profile = review.client.profile if review.client else None
    return {
        "id": review.id,
        "client_id": review.client_id,
        "client_name": client_profile.full_name if client_profile else None,
        "artist_id": review.artist_id,
        "studio_id": review.studio_id,
        "design_id": review.design_id,
        "booking_id": review.booking_id,
        "rating": review.rating,
        "review_text": review.review_text,
        "response_text": review.response_text,
        "responded_at": _iso(review.responded_at),
        "created_at": _iso(review.created_at),
    }
