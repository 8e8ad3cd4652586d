import datetime

from app.models import Design, Profile
from tests.seed_demo_data import seed_demo_data


def test_seed_is_repeatable(db_session):
    first = seed_demo_data()
    second = seed_demo_data()

    assert first == second
    assert db_session.query(Profile).count() == 3
    assert db_session.query(Design).count() == 2


def test_seeded_catalog_is_browsable_and_bookable(client, db_session):
    ids = seed_demo_data()

    designs = client.get("/api/designs?styles=&sort=price_low").get_json()["designs"]
    assert [d["title"] for d in designs] == ["Swallow Flash", "Koi Half Sleeve"]
    assert designs[1]["deposit_amount"] is None

    day = datetime.date.today() + datetime.timedelta(days=3)
    slots = client.get(f"/api/artists/{ids['artist_id']}/slots?date={day.isoformat()}&duration=60").get_json()
    assert slots["slots"][0]["start_time"] == "11:00:00"
