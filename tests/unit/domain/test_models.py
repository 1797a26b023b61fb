from dataclasses import FrozenInstanceError

import pytest

from doggocli.domain.models.common import AuthToken, LocationId, RatingId, UserId
from doggocli.domain.models.location import Location, LocationRating, Rating
from doggocli.domain.models.result import ApiError, ApiResult, ErrorKind
from doggocli.domain.models.user import Session, User

def test_api_result_success():
    result = ApiResult.success([1, 2])
    assert result.ok
    assert result.value == [1, 2]
    assert result.error is None

def test_api_result_failure():
    result = ApiResult.failure(ErrorKind.CLIENT, "Get location 9 failed", status_code=404, payload={"message": "nope"})
    assert not result.ok
    assert result.value is None
    assert result.error.kind == ErrorKind.CLIENT
    assert str(result.error) == "Get location 9 failed (HTTP 404)"

def test_api_result_from_error_keeps_error():
    error = ApiError(ErrorKind.TRANSIENT, "List ratings failed")
    assert ApiResult.from_error(error).error is error
    assert str(error) == "List ratings failed"

def test_models_are_immutable():
    location = Location(id=LocationId(1), name="Bark Park")
    with pytest.raises(FrozenInstanceError):
        location.average_rating = 5.0

def test_location_rating_projection():
    rating = Rating(id=RatingId(10), stars=4, description="Shady", location_id=LocationId(1), user_id=UserId(7))

    projected = LocationRating.from_rating(rating)

    assert projected.id == 10
    assert projected.rating == 4
    assert projected.comment == "Shady"
    assert projected.location_id == 1
    assert projected.user_id == 7
    assert projected.username is None
    assert projected.created_at is None

def test_session_repr_hides_token():
    session = Session(token=AuthToken("super-secret"), user=User(id=UserId(1), username="alice", email="a@x"))
    assert "super-secret" not in repr(session)
    assert "alice" in repr(session)
