"""
Field rules for the client, artist and studio profile forms.

Each validate_* returns {field: message}; an empty dict means the form is ok.
"""

from app.utils.validators import is_valid_email, is_valid_phone, is_valid_url, min_length


def validate_client_form(data):
    errors = {}
    if not min_length(data.get("full_name"), 1):
        errors["full_name"] = "Full name is required"

    phone = (data.get("phone") or "").strip()
    if phone and not is_valid_phone(phone):
        errors["phone"] = "Please enter a valid phone number"

    if not min_length(data.get("city"), 1):
        errors["city"] = "City is required"
    if not min_length(data.get("country"), 1):
        errors["country"] = "Country is required"
    return errors


def validate_artist_form(data):
    errors = {}
    if not min_length(data.get("full_name"), 2):
        errors["full_name"] = "Full name must be at least 2 characters"
    if not min_length(data.get("artist_name"), 2):
        errors["artist_name"] = "Artist name must be at least 2 characters"

    portfolio = (data.get("portfolio_url") or "").strip()
    if portfolio and not is_valid_url(portfolio):
        errors["portfolio_url"] = "Please enter a valid URL"

    years = data.get("years_experience")
    if years not in (None, ""):
        try:
            if int(years) < 0 or int(years) != float(years):
                raise ValueError
        except (TypeError, ValueError):
            errors["years_experience"] = "Years of experience must be a whole number of 0 or more"
    return errors


def validate_studio_form(data):
    errors = {}
    if not min_length(data.get("name"), 2):
        errors["name"] = "Studio name must be at least 2 characters"
    if not min_length(data.get("address"), 5):
        errors["address"] = "Address must be at least 5 characters"
    if not min_length(data.get("city"), 2):
        errors["city"] = "City must be at least 2 characters"
    if not min_length(data.get("country"), 2):
        errors["country"] = "Country must be at least 2 characters"
    if not is_valid_email((data.get("contact_email") or "").strip()):
        errors["contact_email"] = "Please enter a valid email address"

    website = (data.get("website") or "").strip()
    if website and not is_valid_url(website):
        errors["website"] = "Please enter a valid URL"
    return errors
