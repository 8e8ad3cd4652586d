import io

from app.models import ArtistProfile, Design, DesignImage
from tests.conftest import auth_header, make_profile
from tests.test_bookings import make_booking


def upload(client, headers, design_id, name="art.png", **form):
    return client.post(
        f"/api/designs/{design_id}/images",
        data={"image_file": (io.BytesIO(b"fake image bytes"), name), **form},
        headers=headers,
        content_type="multipart/form-data",
    )


class TestDesignPages:
    def test_design_detail(self, client, flash_design, sample_studio):
        data = client.get(f"/api/designs/{flash_design.id}").get_json()

        assert data["design"]["title"] == "Anchor Flash"
        assert data["design"]["styles"] == ["Traditional"]
        assert data["design"]["images"] == []
        assert data["artist"]["artist_name"] == "Ari Ink"
        assert data["artist"]["initials"] == "AI"
        assert data["design"]["summary"] == "Classic traditional anchor"
        assert data["studio"]["name"] == sample_studio.name
        assert data["favorite_count"] == 0
        assert data["more_from_artist"] == []

    def test_long_description_is_summarized(self, client, db_session, flash_design):
        flash_design.description = "Bold lines " * 30
        db_session.commit()

        summary = client.get(f"/api/designs/{flash_design.id}").get_json()["design"]["summary"]
        assert summary.endswith("...")
        assert len(summary) == 143

    def test_unknown_design(self, client, app):
        assert client.get("/api/designs/404").status_code == 404

    def test_artist_page(self, client, sample_artist, sample_studio, flash_design):
        data = client.get(f"/api/artists/{sample_artist.id}").get_json()

        assert data["artist"]["primary_studio_name"] == sample_studio.name
        assert [d["title"] for d in data["designs"]] == ["Anchor Flash"]
        assert data["studios"][0]["role"] == "resident"
        assert data["review_count"] == 0

    def test_artist_list(self, client, sample_artist):
        data = client.get("/api/artists").get_json()
        assert data["total"] == 1
        assert data["artists"][0]["id"] == sample_artist.id


class TestDesignManagement:
    def test_create_design(self, client, db_session, artist_headers, sample_artist, sample_styles):
        style_ids = [s.id for s in sample_styles["styles"][:2]]
        response = client.post(
            "/api/designs",
            json={
                "title": "  Dagger Heart ",
                "base_price": "300",
                "deposit_amount": "60",
                "is_flash": True,
                "estimated_hours": 3,
                "style_ids": style_ids,
            },
            headers=artist_headers,
        )

        assert response.status_code == 201
        design = response.get_json()["design"]
        assert design["title"] == "Dagger Heart"
        assert design["deposit_amount"] == 60.0
        assert design["studio_id"] == sample_artist.primary_studio_id
        assert sorted(design["style_ids"]) == sorted(style_ids)
        assert db_session.get(Design, design["id"]).is_available is True

    def test_create_design_field_errors(self, client, artist_headers):
        response = client.post(
            "/api/designs",
            json={"title": "X", "base_price": "100", "deposit_amount": "150", "estimated_hours": -1},
            headers=artist_headers,
        )

        assert response.status_code == 400
        errors = response.get_json()["errors"]
        assert set(errors) == {"title", "deposit_amount", "estimated_hours"}

    def test_only_artists_create_designs(self, client, client_headers):
        response = client.post("/api/designs", json={"title": "Nope"}, headers=client_headers)
        assert response.status_code == 403

    def test_update_checks_deposit_against_stored_price(self, client, artist_headers, flash_design):
        response = client.put(
            f"/api/designs/{flash_design.id}",
            json={"deposit_amount": "250"},
            headers=artist_headers,
        )
        assert response.status_code == 400

        response = client.put(
            f"/api/designs/{flash_design.id}",
            json={"deposit_amount": "80", "is_available": "false", "tag_ids": []},
            headers=artist_headers,
        )
        assert response.status_code == 200
        design = response.get_json()["design"]
        assert design["deposit_amount"] == 80.0
        assert design["is_available"] is False
        assert design["tags"] == []

    def test_cannot_edit_someone_elses_design(self, client, db_session, flash_design):
        rival = make_profile(db_session, "rival@example.com", "artist")
        db_session.add(ArtistProfile(id=rival.id, artist_name="Rival", is_independent=True))
        db_session.commit()

        response = client.put(f"/api/designs/{flash_design.id}", json={"title": "Mine now"}, headers=auth_header(rival))
        assert response.status_code == 403

    def test_delete_refused_while_booked(self, client, db_session, artist_headers, sample_client, sample_artist, flash_design, booking_day):
        make_booking(db_session, sample_client, sample_artist, booking_day, design=flash_design)

        response = client.delete(f"/api/designs/{flash_design.id}", headers=artist_headers)

        assert response.status_code == 409
        assert db_session.get(Design, flash_design.id) is not None

    def test_delete_removes_images(self, client, db_session, artist_headers, flash_design, fake_s3):
        upload(client, artist_headers, flash_design.id)
        design_id = flash_design.id

        response = client.delete(f"/api/designs/{design_id}", headers=artist_headers)

        assert response.status_code == 200
        assert db_session.get(Design, design_id) is None
        assert db_session.query(DesignImage).count() == 0
        assert len(fake_s3["deletes"]) == 1


class TestDesignImages:
    def test_first_image_is_primary(self, client, artist_headers, flash_design, fake_s3):
        first = upload(client, artist_headers, flash_design.id).get_json()["image"]
        second = upload(client, artist_headers, flash_design.id, name="b.jpg").get_json()["image"]

        assert first["is_primary"] is True
        assert second["is_primary"] is False
        assert second["order_index"] == 1
        assert first["image_url"].startswith(f"https://cdn.test/designs/{flash_design.id}/")
        assert fake_s3["uploads"][0][0] == "inkbook-test-bucket"

    def test_new_primary_replaces_old(self, client, db_session, artist_headers, flash_design):
        first = upload(client, artist_headers, flash_design.id).get_json()["image"]
        second = upload(client, artist_headers, flash_design.id, is_primary="true").get_json()["image"]

        assert db_session.get(DesignImage, first["id"]).is_primary is False
        assert db_session.get(DesignImage, second["id"]).is_primary is True
        listed = client.get(f"/api/designs/{flash_design.id}").get_json()["design"]
        assert listed["primary_image_url"] == second["image_url"]

    def test_rejects_non_images(self, client, artist_headers, flash_design):
        response = upload(client, artist_headers, flash_design.id, name="notes.txt")
        assert response.status_code == 400

    def test_deleting_primary_promotes_next(self, client, db_session, artist_headers, flash_design, fake_s3):
        first = upload(client, artist_headers, flash_design.id).get_json()["image"]
        second = upload(client, artist_headers, flash_design.id).get_json()["image"]

        response = client.delete(f"/api/designs/{flash_design.id}/images/{first['id']}", headers=artist_headers)

        assert response.status_code == 200
        assert db_session.get(DesignImage, first["id"]) is None
        assert db_session.get(DesignImage, second["id"]).is_primary is True
        assert fake_s3["deletes"] == [("inkbook-test-bucket", first["image_url"])]

    def test_image_of_other_design(self, client, artist_headers, flash_design):
        assert client.delete(f"/api/designs/{flash_design.id}/images/999", headers=artist_headers).status_code == 404
