from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

MIN_RATING = 1
MAX_RATING = 5


class Genre(models.Model):
    name = models.CharField(max_length=64, unique=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Movie(models.Model):
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    release_year = models.IntegerField(null=True, blank=True)
    director = models.CharField(max_length=255, blank=True, default="")
    poster_url = models.URLField(max_length=500, blank=True, default="")
    genres = models.ManyToManyField(Genre, through="MovieGenre", related_name="movies")
    created = models.DateTimeField(auto_now_add=True)
    updated = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title


class MovieGenre(models.Model):
    movie = models.ForeignKey(Movie, on_delete=models.CASCADE, related_name="memberships")
    genre = models.ForeignKey(Genre, on_delete=models.CASCADE, related_name="memberships")

    class Meta:
        unique_together = ("movie", "genre")


class UserGenre(models.Model):
    """Explicit genre subscription of a user."""
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="genre_subscriptions")
    genre = models.ForeignKey(Genre, on_delete=models.CASCADE, related_name="subscribers")

    class Meta:
        unique_together = ("user", "genre")


class Rating(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="ratings")
    movie = models.ForeignKey(Movie, on_delete=models.CASCADE, related_name="ratings")
    value = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(MIN_RATING), MaxValueValidator(MAX_RATING)]
    )  # 1–5 stars
    comment = models.TextField(blank=True, null=True)
    created = models.DateTimeField(auto_now_add=True)
    updated = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ("user", "movie")
        constraints = [
            models.CheckConstraint(
                condition=models.Q(value__gte=MIN_RATING) & models.Q(value__lte=MAX_RATING),
                name="rating_value_1_to_5",
            ),
        ]

    def __str__(self):
        return f"{self.user_id} -> {self.movie_id}: {self.value}"


def clamp_rating(value) -> int:
    return max(MIN_RATING, min(MAX_RATING, int(round(float(value)))))


def rate_movie(user, movie, value, comment=None) -> Rating:
    """Create or overwrite the user's rating of a movie; value is clamped to 1..5."""
    rating, _ = Rating.objects.update_or_create(
        user=user, movie=movie, defaults={"value": clamp_rating(value), "comment": comment}
    )
    return rating


def movie_payload(movie: Movie) -> dict:
    """Flatten a movie for JSON output, genres as names."""
    return {
        "id": movie.id,
        "title": movie.title,
        "description": movie.description,
        "release_year": movie.release_year,
        "director": movie.director,
        "poster_url": movie.poster_url,
        "genres": sorted(g.name for g in movie.genres.all()),
    }
