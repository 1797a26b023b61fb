from datetime import datetime, timezone

import pytest

from doggocli.domain.models.common import LocationId
from doggocli.domain.models.location import RatingSubmission
from doggocli.domain.models.user import LoginRequest, RegisterRequest
from doggocli.infrastructure.http.wire import (
    WireFormatError, decode_list, decode_location, decode_rating, decode_session, decode_user,
    encode_login, encode_register, encode_rating_submission, parse_timestamp
)

def test_decode_user_reads_snake_case_timestamps(user_payload):
    user = decode_user(user_payload)

    assert user.id == 7
    assert user.username == "alice"
    assert user.email == "alice@example.com"
    assert user.created_at == datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)
    assert user.updated_at == datetime(2024, 3, 2, 10, 0, tzinfo=timezone.utc)

def test_decode_user_tolerates_missing_optional_fields():
    user = decode_user({"id": "3", "username": "bob"})

    assert user.id == 3
    assert user.email == ""
    assert user.created_at is None

def test_decode_user_accepts_any_key_casing():
    user = decode_user({"ID": 4, "UserName": "carol", "CreatedAt": "2024-01-01T00:00:00"})

    assert user.id == 4
    assert user.username == "carol"
    assert user.created_at == datetime(2024, 1, 1)

def test_decode_session(user_payload):
    session = decode_session({"token": "tok-1", "user": user_payload})

    assert session.token == "tok-1"
    assert session.user.username == "alice"

@pytest.mark.parametrize("payload", [
    {"user": {"id": 1, "username": "x"}},
    {"token": "", "user": {"id": 1, "username": "x"}},
    {"token": "tok"},
    ["not", "an", "object"],
])
def test_decode_session_rejects_incomplete_payloads(payload):
    with pytest.raises(WireFormatError):
        decode_session(payload)

def test_decode_location_maps_backend_names(locations_payload):
    location = decode_location(locations_payload[0])

    assert location.id == 1
    assert location.name == "Bark Park"
    assert location.latitude == pytest.approx(52.37)
    assert location.longitude == pytest.approx(4.89)
    assert location.is_allowed is True
    assert location.owner_user_id == 7
    assert location.average_rating is None
    assert location.rating_count == 0

def test_decode_location_reads_backend_average_and_disallowed():
    location = decode_location({"id": 5, "name": "Museum", "allowed": 0, "average_rating": "4.5"})

    assert location.is_allowed is False
    assert location.average_rating == 4.5
    assert location.owner_user_id is None

def test_decode_location_requires_id():
    with pytest.raises(WireFormatError, match="id"):
        decode_location({"name": "Nowhere"})

def test_decode_location_rejects_non_numeric_coordinates():
    with pytest.raises(WireFormatError, match="latitude"):
        decode_location({"id": 1, "name": "x", "lat": "north"})

def test_decode_rating(ratings_payload):
    rating = decode_rating(ratings_payload[0])

    assert rating.id == 10
    assert rating.stars == 5
    assert rating.description == "Great"
    assert rating.location_id == 1
    assert rating.user_id == 7

def test_decode_rating_accepts_camel_case_location_id():
    rating = decode_rating({"id": 1, "stars": 3, "locationId": 9})

    assert rating.location_id == 9
    assert rating.description == ""
    assert rating.user_id is None

def test_decode_list_plain_and_enveloped(ratings_payload):
    assert len(decode_list(ratings_payload, decode_rating, "ratings")) == 4
    assert len(decode_list({"data": ratings_payload}, decode_rating, "ratings")) == 4

def test_decode_list_rejects_objects():
    with pytest.raises(WireFormatError, match="array"):
        decode_list({"message": "Server Error"}, decode_rating, "ratings")

@pytest.mark.parametrize("value", [None, "", "yesterday", 12])
def test_parse_timestamp_gives_none_for_unusable_values(value):
    assert parse_timestamp(value) is None

def test_encode_login():
    assert encode_login(LoginRequest("alice", "s3cret")) == {"username": "alice", "password": "s3cret"}

def test_encode_register_sends_confirmation_in_snake_case():
    body = encode_register(RegisterRequest("alice", "alice@example.com", "s3cret", "s3cret"))

    assert body == {
        "username": "alice",
        "email": "alice@example.com",
        "password": "s3cret",
        "password_confirmation": "s3cret",
    }

def test_encode_rating_submission():
    body = encode_rating_submission(RatingSubmission(location_id=LocationId(3), stars=4, description="Lots of shade"))

    assert body == {"location_id": 3, "stars": 4, "description": "Lots of shade"}
