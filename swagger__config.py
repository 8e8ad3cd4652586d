# noqa: E402
"""
Swagger/OpenAPI configuration for the InkBook API
"""

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec",
            "route": "/apispec.json",
            "rule_filter": lambda rule: True,
            "model_filter": lambda tag: True,
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/api/docs",
}

SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "InkBook API",
        "description": "REST API for the tattoo marketplace: designs, artists, studios, profiles, booking with deposits, favorites and reviews",
        "contact": {"email": "support@inkbook.app"},
        "version": "1.0.0",
    },
    "host": "",
    "basePath": "/",
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": 'JWT Authorization header using the Bearer scheme. Example: "Authorization: Bearer {token}"',
        }
    },
    "tags": [
        {"name": "Auth", "description": "Email/password and magic-link sign-in"},
        {"name": "Profiles", "description": "Client, artist and studio profiles"},
        {"name": "Catalog", "description": "Styles and tags"},
        {"name": "Designs", "description": "Design browsing and management"},
        {"name": "Artists", "description": "Artist search and details"},
        {"name": "Availability", "description": "Weekly hours, free windows and bookable slots"},
        {"name": "Studios", "description": "Studio search, details and roster"},
        {"name": "Studio Admin", "description": "Studio owner dashboard and branding"},
        {"name": "Bookings", "description": "Booking wizard, deposits and lifecycle"},
        {"name": "Favorites", "description": "Saved designs, artists and studios"},
        {"name": "Search", "description": "Unified search page"},
        {"name": "Dashboard", "description": "Client dashboard"},
        {"name": "Utility", "description": "Health check"},
    ],
    "definitions": {
        "Error": {
            "type": "object",
            "properties": {
                "status": {"type": "string", "example": "error"},
                "message": {"type": "string"},
                "details": {"type": "string"},
                "redirect_to": {"type": "string", "example": "/auth/signin?redirect=%2Fapi%2Fbookings"},
            },
        },
        "Success": {
            "type": "object",
            "properties": {
                "status": {"type": "string", "example": "success"},
                "message": {"type": "string"},
            },
        },
        "Design": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "title": {"type": "string"},
                "base_price": {"type": "number"},
                "deposit_amount": {"type": "number"},
                "is_available": {"type": "boolean"},
                "is_flash": {"type": "boolean"},
                "is_color": {"type": "boolean"},
                "artist_id": {"type": "integer"},
                "artist_name": {"type": "string"},
                "studio_id": {"type": "integer"},
                "studio_name": {"type": "string"},
                "primary_image_url": {"type": "string"},
                "styles": {"type": "array", "items": {"type": "string"}},
                "tags": {"type": "array", "items": {"type": "string"}},
                "distance_km": {"type": "number"},
            },
        },
        "Artist": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "artist_name": {"type": "string"},
                "full_name": {"type": "string"},
                "years_experience": {"type": "integer"},
                "city": {"type": "string"},
                "is_independent": {"type": "boolean"},
                "primary_studio_id": {"type": "integer"},
                "average_rating": {"type": "number"},
            },
        },
        "Studio": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "name": {"type": "string"},
                "address": {"type": "string"},
                "city": {"type": "string"},
                "country": {"type": "string"},
                "is_verified": {"type": "boolean"},
                "logo_url": {"type": "string"},
                "banner_url": {"type": "string"},
                "artist_count": {"type": "integer"},
            },
        },
        "Booking": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "artist_id": {"type": "integer"},
                "studio_id": {"type": "integer"},
                "design_id": {"type": "integer"},
                "booking_date": {"type": "string", "format": "date"},
                "start_time": {"type": "string", "example": "14:00:00"},
                "end_time": {"type": "string", "example": "16:00:00"},
                "status": {"type": "string", "enum": ["pending", "confirmed", "completed", "cancelled"]},
                "total_price": {"type": "number"},
                "deposit_amount": {"type": "number"},
                "is_rescheduled": {"type": "boolean"},
                "previous_booking_id": {"type": "integer"},
            },
        },
        "TimeSlot": {
            "type": "object",
            "properties": {
                "start_time": {"type": "string", "example": "10:00:00"},
                "end_time": {"type": "string", "example": "11:00:00"},
            },
        },
    },
}
