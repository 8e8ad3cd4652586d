import datetime

from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from ...extensions import db
from ...models import ACTIVE_BOOKING_STATUSES, Booking, Design, DesignImage, Favorite, Style, Tag
from ...services.search_service import page_to_offset, parse_search_params, resolve_sort, search_designs_advanced
from ...utils.auth_utils import role_required, token_required
from ...utils.s3_utils import DESIGNS_FOLDER, StorageError, delete_file_from_s3, upload_image
from ...utils.serializers import serialize_artist, serialize_design, serialize_studio
from ...utils.validators import parse_bool, parse_id_list, parse_money

designs_bp = Blueprint("designs", __name__, url_prefix="/api/designs")


def _validate_design(data, partial=False):
    errors = {}
    title = (data.get("title") or "").strip()
    if (not partial or "title" in data) and len(title) < 2:
        errors["title"] = "Title must be at least 2 characters"

    prices = {}
    for field in ("base_price", "deposit_amount"):
        try:
            prices[field] = parse_money(data.get(field))
        except ValueError:
            errors[field] = "Invalid amount"

    base = prices.get("base_price")
    deposit = prices.get("deposit_amount")
    if base is not None and base < 0:
        errors["base_price"] = "Price cannot be negative"
    if deposit is not None and deposit <= 0:
        errors["deposit_amount"] = "Deposit must be greater than zero"
    elif deposit is not None and base is not None and deposit > base:
        errors["deposit_amount"] = "Deposit cannot exceed the price"

    hours = data.get("estimated_hours")
    if hours not in (None, ""):
        try:
            if float(hours) <= 0:
                raise ValueError
        except (TypeError, ValueError):
            errors["estimated_hours"] = "Estimated hours must be a positive number"
    return errors


def _apply_design_fields(design, data):
    for field in ("title", "description", "size", "placement"):
        if field in data:
            value = data.get(field)
            setattr(design, field, value.strip() if isinstance(value, str) and value.strip() else None)
    for field in ("base_price", "deposit_amount"):
        if field in data:
            setattr(design, field, parse_money(data.get(field)))
    for field in ("is_available", "is_flash", "is_custom", "is_color"):
        if field in data:
            value = parse_bool(data.get(field))
            if value is not None:
                setattr(design, field, value)
    if "estimated_hours" in data:
        hours = data.get("estimated_hours")
        design.estimated_hours = float(hours) if hours not in (None, "") else None

    if "style_ids" in data:
        ids = parse_id_list(data.get("style_ids"))
        design.styles = db.session.scalars(select(Style).where(Style.id.in_(ids))).all() if ids else []
    if "tag_ids" in data:
        ids = parse_id_list(data.get("tag_ids"))
        design.tags = db.session.scalars(select(Tag).where(Tag.id.in_(ids))).all() if ids else []


def _owned_design(design_id):
    """(design, error_response). Only the design's artist may change it."""
    design = db.session.get(Design, design_id)
    if not design:
        return None, (jsonify({"status": "error", "message": "Design not found"}), 404)
    if design.artist_id != g.current_user.id:
        return None, (jsonify({"status": "error", "message": "You can only manage your own designs"}), 403)
    return design, None


@designs_bp.route("", methods=["GET"])
def list_designs():
    """
    Browse and filter designs
    ---
    tags:
      - Designs
    parameters:
      - {in: query, name: q, type: string, description: Search title and description}
      - {in: query, name: styles, type: string, description: Comma separated style ids}
      - {in: query, name: tags, type: string, description: Comma separated tag ids}
      - {in: query, name: artist, type: integer}
      - {in: query, name: studio, type: integer}
      - {in: query, name: min_price, type: number}
      - {in: query, name: max_price, type: number}
      - {in: query, name: color, type: boolean}
      - {in: query, name: flash, type: boolean}
      - {in: query, name: city, type: string}
      - {in: query, name: state, type: string}
      - {in: query, name: country, type: string}
      - {in: query, name: distance, type: number, description: Kilometres from lat/lng}
      - {in: query, name: lat, type: number}
      - {in: query, name: lng, type: number}
      - {in: query, name: include_booked, type: boolean}
      - {in: query, name: sort, type: string, enum: [newest, price_low, price_high, popular]}
      - {in: query, name: page, type: integer}
      - {in: query, name: limit, type: integer}
    responses:
      200:
        description: One page of designs plus the total match count
    """
    try:
        params = parse_search_params(request.args)
        limit, offset = page_to_offset(params.get("page"), params.get("limit"))
        sort = resolve_sort("designs", params.get("sort"))

        rows, total = search_designs_advanced(
            style_ids=params.get("styles"),
            tag_ids=params.get("tags"),
            artist_id=params.get("artist"),
            studio_id=params.get("studio"),
            min_price=params.get("min_price"),
            max_price=params.get("max_price"),
            is_color=params.get("color"),
            is_flash=params.get("flash"),
            search_term=params.get("q"),
            city=params.get("city"),
            state=params.get("state"),
            country=params.get("country"),
            distance=params.get("distance"),
            lat=params.get("lat"),
            lng=params.get("lng"),
            include_booked=params.get("include_booked", False),
            sort_by=sort,
            limit=limit,
            offset=offset,
        )
        return jsonify({
            "status": "success",
            "designs": rows,
            "total": total,
            "limit": limit,
            "offset": offset,
            "sort": sort,
        }), 200

    except Exception as e:
        current_app.logger.error(f"Design search failed: {e}")
        return jsonify({"status": "error", "message": "Database error", "details": str(e)}), 500


@designs_bp.route("/<int:design_id>", methods=["GET"])
def get_design(design_id):
    """
    GET /api/designs/<design_id>
    Purpose: Design page data: the design, its artist and studio, and more work by the same artist.
    """
    try:
        design = db.session.get(Design, design_id)
        if not design:
            return jsonify({"status": "error", "message": "Design not found"}), 404

        favorites = db.session.scalar(
            select(func.count(Favorite.id)).where(Favorite.design_id == design.id)
        )
        more = db.session.scalars(
            select(Design)
            .where(
                Design.artist_id == design.artist_id,
                Design.id != design.id,
                Design.is_available.is_(True),
            )
            .order_by(Design.created_at.desc(), Design.id.desc())
            .limit(4)
        ).all()

        return jsonify({
            "status": "success",
            "design": serialize_design(design, detail=True),
            "artist": serialize_artist(design.artist),
            "studio": serialize_studio(design.studio) if design.studio else None,
            "favorite_count": favorites,
            "more_from_artist": [serialize_design(d) for d in more],
        }), 200

    except Exception as e:
        return jsonify({"status": "error", "message": "Database error", "details": str(e)}), 500


@designs_bp.route("", methods=["POST"])
@token_required
@role_required("artist")
def create_design():
    """
    Publish a new design
    ---
    tags:
      - Designs
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [title]
          properties:
            title: {type: string}
            description: {type: string}
            base_price: {type: number}
            deposit_amount: {type: number}
            is_flash: {type: boolean}
            is_custom: {type: boolean}
            is_color: {type: boolean}
            size: {type: string}
            placement: {type: string}
            estimated_hours: {type: number}
            style_ids: {type: array, items: {type: integer}}
            tag_ids: {type: array, items: {type: integer}}
    responses:
      201:
        description: Design created
      400:
        description: Field errors
      403:
        description: Artist profile required
    """
    try:
        data = request.get_json(force=True)
        errors = _validate_design(data)
        if errors:
            return jsonify({"status": "error", "message": "Please fix the highlighted fields", "errors": errors}), 400

        artist = g.current_user.artist_profile
        design = Design(
            artist_id=artist.id,
            studio_id=artist.primary_studio_id,
            title=data.get("title").strip(),
            is_available=True,
        )
        _apply_design_fields(design, data)
        db.session.add(design)
        db.session.commit()

        return jsonify({
            "status": "success",
            "message": "Design created",
            "design": serialize_design(design, detail=True),
        }), 201

    except IntegrityError as e:
        db.session.rollback()
        return jsonify({"status": "error", "message": "Database integrity error", "details": str(e.orig)}), 400

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Design create failed: {e}")
        return jsonify({"status": "error", "message": "Internal server error", "details": str(e)}), 500


@designs_bp.route("/<int:design_id>", methods=["PUT"])
@token_required
@role_required("artist")
def update_design(design_id):
    try:
        design, error = _owned_design(design_id)
        if error:
            return error

        data = request.get_json(force=True)
        # validate against the merged values so deposit <= price still holds
        merged = {
            "title": design.title,
            "base_price": design.base_price,
            "deposit_amount": design.deposit_amount,
            **data,
        }
        errors = _validate_design(merged, partial=True)
        if errors:
            return jsonify({"status": "error", "message": "Please fix the highlighted fields", "errors": errors}), 400

        _apply_design_fields(design, data)
        design.updated_at = datetime.datetime.now()
        db.session.commit()

        return jsonify({
            "status": "success",
            "message": "Design updated",
            "design": serialize_design(design, detail=True),
        }), 200

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Design update failed: {e}")
        return jsonify({"status": "error", "message": "Internal server error", "details": str(e)}), 500


@designs_bp.route("/<int:design_id>", methods=["DELETE"])
@token_required
@role_required("artist")
def delete_design(design_id):
    """
    DELETE /api/designs/<design_id>
    Purpose: Remove a design and its images.

    Behavior:
    - Refused with 409 while a pending or confirmed booking uses the design
    """
    try:
        design, error = _owned_design(design_id)
        if error:
            return error

        active = db.session.scalar(
            select(func.count(Booking.id)).where(
                Booking.design_id == design.id,
                Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            )
        )
        if active:
            return jsonify({
                "status": "error",
                "message": "This design has upcoming bookings; mark it unavailable instead"
            }), 409

        bucket_name = current_app.config.get("S3_BUCKET_NAME")
        for image in design.images:
            if bucket_name and not delete_file_from_s3(image.image_url, bucket_name):
                current_app.logger.warning(f"Could not delete {image.image_url} from storage")

        db.session.delete(design)
        db.session.commit()
        return jsonify({"status": "success", "message": "Design deleted"}), 200

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Design delete failed: {e}")
        return jsonify({"status": "error", "message": "Internal server error", "details": str(e)}), 500


@designs_bp.route("/<int:design_id>/images", methods=["POST"])
@token_required
@role_required("artist")
def upload_design_image(design_id):
    """
    Attach an image to a design
    ---
    tags:
      - Designs
    consumes:
      - multipart/form-data
    security:
      - Bearer: []
    parameters:
      - in: path
        name: design_id
        type: integer
        required: true
      - in: formData
        name: image_file
        type: file
        required: true
      - in: formData
        name: is_primary
        type: boolean
    responses:
      201:
        description: Image stored
      400:
        description: Missing file or unsupported type
    """
    try:
        design, error = _owned_design(design_id)
        if error:
            return error

        try:
            url, key = upload_image(request.files.get("image_file"), DESIGNS_FOLDER, design.id)
        except ValueError as e:
            return jsonify({"status": "error", "message": str(e)}), 400

        # the first image is always primary
        make_primary = parse_bool(request.form.get("is_primary")) or not design.images
        if make_primary:
            for existing in design.images:
                existing.is_primary = False

        next_index = max((img.order_index for img in design.images), default=-1) + 1
        image = DesignImage(
            design_id=design.id,
            image_url=url,
            storage_path=key,
            is_primary=bool(make_primary),
            order_index=next_index,
        )
        db.session.add(image)
        db.session.commit()

        return jsonify({
            "status": "success",
            "message": "Image uploaded successfully",
            "image": {
                "id": image.id,
                "image_url": image.image_url,
                "is_primary": image.is_primary,
                "order_index": image.order_index,
            },
        }), 201

    except StorageError as e:
        db.session.rollback()
        current_app.logger.error(f"Design image upload failed: {e}")
        return jsonify({"status": "error", "message": "Failed to upload image", "details": str(e)}), 500

    except Exception as e:
        db.session.rollback()
        return jsonify({"status": "error", "message": "Failed to upload image", "details": str(e)}), 500


@designs_bp.route("/<int:design_id>/images/<int:image_id>", methods=["DELETE"])
@token_required
@role_required("artist")
def delete_design_image(design_id, image_id):
    try:
        design, error = _owned_design(design_id)
        if error:
            return error

        image = db.session.get(DesignImage, image_id)
        if not image or image.design_id != design.id:
            return jsonify({"status": "error", "message": "Image not found"}), 404

        bucket_name = current_app.config.get("S3_BUCKET_NAME")
        if bucket_name and not delete_file_from_s3(image.image_url, bucket_name):
            current_app.logger.warning(f"Could not delete {image.image_url} from storage")

        was_primary = image.is_primary
        design.images.remove(image)
        if was_primary and design.images:
            design.images[0].is_primary = True
        db.session.commit()

        return jsonify({"status": "success", "message": "Image deleted"}), 200

    except Exception as e:
        db.session.rollback()
        return jsonify({"status": "error", "message": "Failed to delete image", "details": str(e)}), 500
