import pytest
from django.db import IntegrityError, transaction

from movies.models import Rating, clamp_rating, movie_payload, rate_movie


@pytest.mark.parametrize("raw, expected", [(0, 1), (-4, 1), (1, 1), (3, 3), (5, 5), (9, 5), (4.6, 5), ("2", 2)])
def test_clamp_rating(raw, expected):
    assert clamp_rating(raw) == expected


@pytest.mark.django_db
def test_rate_movie_upserts_and_clamps(make_user, make_movie):
    user, movie = make_user(), make_movie("Heat")
    first = rate_movie(user, movie, 9, "great")
    second = rate_movie(user, movie, -1)

    assert first.pk == second.pk
    second.refresh_from_db()
    assert second.value == 1
    assert second.comment is None
    assert Rating.objects.count() == 1


@pytest.mark.django_db
def test_database_rejects_out_of_range_rating(make_user, make_movie):
    user, movie = make_user(), make_movie("Heat")
    with pytest.raises(IntegrityError), transaction.atomic():
        Rating.objects.create(user=user, movie=movie, value=7)


@pytest.mark.django_db
def test_movie_payload_flattens_genre_names(make_movie):
    movie = make_movie("Heat", 1995, genres=["Drama", "Action", "Crime"])
    payload = movie_payload(movie)
    assert payload["genres"] == ["Action", "Crime", "Drama"]
    assert payload["id"] == movie.id
    assert payload["release_year"] == 1995
