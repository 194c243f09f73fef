import io
import os
import re
import zipfile

import pandas as pd
import requests
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from movies.models import Genre, Movie, MovieGenre, rate_movie
from movies.recommendations import invalidate_recommendations

DEFAULT_URL = "https://files.grouplens.org/datasets/movielens/ml-latest-small.zip"
NO_GENRES = "(no genres listed)"
YEAR_RE = re.compile(r"\s*\((\d{4})\)\s*$")


def split_title(raw: str):
    """'Toy Story (1995)' -> ('Toy Story', 1995); no year suffix -> (raw, None)."""
    m = YEAR_RE.search(raw)
    if not m:
        return raw.strip(), None
    return raw[:m.start()].strip(), int(m.group(1))


class Command(BaseCommand):
    help = "Import MovieLens (small) movies and genres, optionally users and ratings."

    def add_arguments(self, parser):
        parser.add_argument(
            "--url",
            default=DEFAULT_URL,
            help="URL to the MovieLens ZIP (default: ml-latest-small.zip from GroupLens).",
        )
        parser.add_argument(
            "--path",
            default=None,
            help="Local folder (already unzipped) with movies.csv and ratings.csv. If given, --url is ignored.",
        )
        parser.add_argument(
            "--with-ratings",
            action="store_true",
            help="Also create one user per MovieLens userId and import their ratings.",
        )
        parser.add_argument("--limit", type=int, default=None, help="Only import the first N movies.")

    def handle(self, *args, **opts):
        if opts["path"]:
            self.stdout.write(self.style.WARNING("Using local --path, ignoring --url"))
            movies_csv = os.path.join(opts["path"], "movies.csv")
            ratings_csv = os.path.join(opts["path"], "ratings.csv")
            if not os.path.exists(movies_csv):
                self.stderr.write("movies.csv not found in --path")
                return
            if opts["with_ratings"] and not os.path.exists(ratings_csv):
                self.stderr.write("ratings.csv not found in --path")
                return
            movies_df = pd.read_csv(movies_csv)
            ratings_df = pd.read_csv(ratings_csv) if opts["with_ratings"] else None
        else:
            self.stdout.write(f"Downloading ZIP from: {opts['url']}")
            resp = requests.get(opts["url"], timeout=60)
            resp.raise_for_status()
            with zipfile.ZipFile(io.BytesIO(resp.content)) as arc:
                names = {os.path.basename(n): n for n in arc.namelist()}
                if "movies.csv" not in names:
                    self.stderr.write("Could not locate movies.csv in the ZIP")
                    return
                with arc.open(names["movies.csv"]) as f:
                    movies_df = pd.read_csv(f)
                ratings_df = None
                if opts["with_ratings"] and "ratings.csv" in names:
                    with arc.open(names["ratings.csv"]) as f:
                        ratings_df = pd.read_csv(f)

        if opts["limit"]:
            movies_df = movies_df.head(opts["limit"])

        ml2movie = self._import_movies(movies_df)
        if ratings_df is not None:
            self._import_ratings(ratings_df, ml2movie)
        invalidate_recommendations()
        self.stdout.write(self.style.SUCCESS("MovieLens import finished."))

    # ---------------- internal helpers ----------------

    @transaction.atomic
    def _import_movies(self, df: pd.DataFrame):
        self.stdout.write(f"Importing {len(df)} movies...")
        genres = {g.name: g for g in Genre.objects.all()}
        ml2movie = {}
        for row in df.itertuples(index=False):
            title, year = split_title(str(row.title))
            movie, _ = Movie.objects.get_or_create(title=title, release_year=year)
            ml2movie[int(row.movieId)] = movie
            names = [] if pd.isna(row.genres) else str(row.genres).split("|")
            for name in names:
                if not name or name == NO_GENRES:
                    continue
                if name not in genres:
                    genres[name], _ = Genre.objects.get_or_create(name=name)
                MovieGenre.objects.get_or_create(movie=movie, genre=genres[name])
        self.stdout.write(f"Genres: {len(genres)}  Movies: {len(ml2movie)}")
        return ml2movie

    @transaction.atomic
    def _import_ratings(self, df: pd.DataFrame, ml2movie):
        df = df[df.movieId.isin(list(ml2movie))]
        self.stdout.write(f"Importing {len(df)} ratings...")
        User = get_user_model()
        users = {}
        for row in df.itertuples(index=False):
            uid = int(row.userId)
            if uid not in users:
                users[uid], _ = User.objects.get_or_create(username=f"ml{uid}")
            # half stars round into the 1..5 scale
            rate_movie(users[uid], ml2movie[int(row.movieId)], row.rating)
        self.stdout.write(f"Users: {len(users)}")
