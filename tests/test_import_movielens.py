import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command

from movies.management.commands.import_movielens import split_title
from movies.models import Genre, Movie, Rating

MOVIES_CSV = """movieId,title,genres
1,Toy Story (1995),Adventure|Animation|Children
2,"American President, The (1995)",Comedy|Drama|Romance
3,Untitled Project,(no genres listed)
"""

RATINGS_CSV = """userId,movieId,rating,timestamp
1,1,4.5,964982703
1,2,0.5,964981247
2,1,5.0,964982224
2,3,3.0,964983815
"""


@pytest.mark.parametrize("raw, expected", [
    ("Toy Story (1995)", ("Toy Story", 1995)),
    ("Babylon 5", ("Babylon 5", None)),
    ("Lord of the Rings (1978) ", ("Lord of the Rings", 1978)),
])
def test_split_title(raw, expected):
    assert split_title(raw) == expected


@pytest.fixture
def movielens_dir(tmp_path):
    (tmp_path / "movies.csv").write_text(MOVIES_CSV, encoding="utf-8")
    (tmp_path / "ratings.csv").write_text(RATINGS_CSV, encoding="utf-8")
    return tmp_path


@pytest.mark.django_db
def test_import_movies_only(movielens_dir):
    call_command("import_movielens", path=str(movielens_dir))

    assert Movie.objects.count() == 3
    toy = Movie.objects.get(title="Toy Story")
    assert toy.release_year == 1995
    assert sorted(g.name for g in toy.genres.all()) == ["Adventure", "Animation", "Children"]
    assert not Genre.objects.filter(name="(no genres listed)").exists()
    assert Movie.objects.get(title="Untitled Project").genres.count() == 0
    assert Rating.objects.count() == 0


@pytest.mark.django_db
def test_import_with_ratings_is_idempotent(movielens_dir):
    call_command("import_movielens", path=str(movielens_dir), with_ratings=True)
    call_command("import_movielens", path=str(movielens_dir), with_ratings=True)

    assert Movie.objects.count() == 3
    assert get_user_model().objects.filter(username__startswith="ml").count() == 2
    values = dict(
        Rating.objects.filter(user__username="ml1").values_list("movie__title", "value")
    )
    assert values == {"Toy Story": 4, "American President, The": 1}
    assert Rating.objects.count() == 4


@pytest.mark.django_db
def test_import_missing_files_reports_error(tmp_path):
    call_command("import_movielens", path=str(tmp_path))
    assert Movie.objects.count() == 0
