import itertools

import pytest
from django.core.cache import cache

from movies.models import Genre, Movie, MovieGenre, UserGenre


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_genre(db):
    def make(name):
        return Genre.objects.get_or_create(name=name)[0]
    return make


@pytest.fixture
def make_movie(make_genre):
    def make(title, year=2000, genres=()):
        movie = Movie.objects.create(title=title, release_year=year)
        for name in genres:
            MovieGenre.objects.create(movie=movie, genre=make_genre(name))
        return movie
    return make


@pytest.fixture
def make_user(django_user_model):
    counter = itertools.count(1)

    def make(name=None):
        name = name or f"user{next(counter)}"
        return django_user_model.objects.create_user(
            username=f"{name}@example.com", email=f"{name}@example.com", password="secret-pw",
        )
    return make


@pytest.fixture
def subscribe(make_genre):
    def make(user, *names):
        for name in names:
            UserGenre.objects.create(user=user, genre=make_genre(name))
    return make
