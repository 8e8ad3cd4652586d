"""
Pytest configuration and shared fixtures for the InkBook tests.

Every test gets a fresh app bound to an in-memory SQLite database, so tests
never touch a real MySQL instance.
"""

import datetime
from decimal import Decimal

import bcrypt
import pytest

from main import create_app
from app.extensions import db as database
from app.models import (
    ArtistAvailability,
    ArtistProfile,
    Base,
    ClientProfile,
    Design,
    Profile,
    Studio,
    StudioArtist,
    Style,
    Tag,
)
from app.utils.auth_utils import create_session_token

TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite://",
    "SECRET_KEY": "test-secret-key-for-testing-only",
    "S3_BUCKET_NAME": "inkbook-test-bucket",
    "SCHEDULER_ENABLED": False,
}


@pytest.fixture
def app():
    """Create a test app with all tables created."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        if "sqlite" not in app.config["SQLALCHEMY_DATABASE_URI"]:
            pytest.exit("Refusing to run tests against a non-SQLite database")

        Base.metadata.create_all(bind=database.engine)
        yield app
        database.session.remove()
        Base.metadata.drop_all(bind=database.engine)


@pytest.fixture
def db_session(app):
    return database.session


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def fake_s3(monkeypatch):
    """Record uploads/deletes instead of calling AWS."""
    calls = {"uploads": [], "deletes": []}

    def fake_upload(file, filename, bucket_name):
        calls["uploads"].append((bucket_name, filename))
        return f"https://cdn.test/{filename}"

    def fake_delete(image_url, bucket_name):
        calls["deletes"].append((bucket_name, image_url))
        return True

    monkeypatch.setattr("app.utils.s3_utils.upload_file_to_s3", fake_upload)
    monkeypatch.setattr("app.api.designs.details.delete_file_from_s3", fake_delete)
    return calls


def make_profile(session, email, user_type=None, password="password123", full_name=None):
    profile = Profile(
        email=email,
        password_hash=bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()),
        full_name=full_name,
        user_type=user_type,
    )
    session.add(profile)
    session.flush()
    return profile


def auth_header(profile):
    return {"Authorization": f"Bearer {create_session_token(profile)}"}


@pytest.fixture
def sample_client(db_session):
    """A client with a complete client profile."""
    profile = make_profile(db_session, "client@example.com", "client", full_name="Casey Client")
    db_session.add(ClientProfile(id=profile.id, city="Portland", country="USA"))
    db_session.commit()
    return profile


@pytest.fixture
def other_client(db_session):
    profile = make_profile(db_session, "other@example.com", "client", full_name="Olive Other")
    db_session.add(ClientProfile(id=profile.id, city="Seattle", country="USA"))
    db_session.commit()
    return profile


@pytest.fixture
def sample_studio(db_session):
    """A studio owner and their studio."""
    owner = make_profile(db_session, "owner@example.com", "studio", full_name="Sam Owner")
    studio = Studio(
        name="Black Anchor Tattoo",
        address="12 Harbor Street",
        city="Portland",
        state="OR",
        country="USA",
        latitude=45.5152,
        longitude=-122.6784,
        contact_email="hello@blackanchor.test",
        created_by=owner.id,
    )
    db_session.add(studio)
    db_session.commit()
    return studio


@pytest.fixture
def sample_artist(db_session, sample_studio):
    """An artist at sample_studio, available 10:00-18:00 every day."""
    profile = make_profile(db_session, "artist@example.com", "artist", full_name="Ari Artist")
    artist = ArtistProfile(
        id=profile.id,
        artist_name="Ari Ink",
        years_experience=8,
        city="Portland",
        country="USA",
        latitude=45.52,
        longitude=-122.68,
        is_independent=False,
        primary_studio_id=sample_studio.id,
    )
    db_session.add(artist)
    db_session.add(StudioArtist(studio_id=sample_studio.id, artist_id=profile.id, role="resident"))
    for weekday in range(7):
        db_session.add(
            ArtistAvailability(
                artist_id=profile.id,
                weekday=weekday,
                start_time=datetime.time(10, 0),
                end_time=datetime.time(18, 0),
            )
        )
    db_session.commit()
    return artist


@pytest.fixture
def sample_styles(db_session):
    styles = [Style(name="Traditional"), Style(name="Blackwork"), Style(name="Fine Line")]
    tags = [Tag(name="anchor", category="nautical"), Tag(name="rose", category="floral")]
    db_session.add_all(styles + tags)
    db_session.commit()
    return {"styles": styles, "tags": tags}


@pytest.fixture
def flash_design(db_session, sample_artist, sample_styles):
    """A two-hour flash design with an explicit deposit."""
    design = Design(
        artist_id=sample_artist.id,
        studio_id=sample_artist.primary_studio_id,
        title="Anchor Flash",
        description="Classic traditional anchor",
        base_price=Decimal("200.00"),
        deposit_amount=Decimal("50.00"),
        is_flash=True,
        is_color=True,
        estimated_hours=2,
        created_at=datetime.datetime(2025, 1, 1, 12, 0),
    )
    design.styles = [sample_styles["styles"][0]]
    design.tags = [sample_styles["tags"][0]]
    db_session.add(design)
    db_session.commit()
    return design


@pytest.fixture
def booking_day():
    """A date comfortably in the future."""
    return datetime.date.today() + datetime.timedelta(days=7)


@pytest.fixture
def client_headers(sample_client):
    return auth_header(sample_client)


@pytest.fixture
def artist_headers(sample_artist):
    return auth_header(sample_artist.profile)


@pytest.fixture
def owner_headers(sample_studio):
    return auth_header(sample_studio.creator)
