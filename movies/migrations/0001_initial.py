import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Genre",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=64, unique=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Movie",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("release_year", models.IntegerField(blank=True, null=True)),
                ("director", models.CharField(blank=True, default="", max_length=255)),
                ("poster_url", models.URLField(blank=True, default="", max_length=500)),
                ("created", models.DateTimeField(auto_now_add=True)),
                ("updated", models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name="MovieGenre",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("genre", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="memberships", to="movies.genre")),
                ("movie", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="memberships", to="movies.movie")),
            ],
            options={
                "unique_together": {("movie", "genre")},
            },
        ),
        migrations.AddField(
            model_name="movie",
            name="genres",
            field=models.ManyToManyField(related_name="movies", through="movies.MovieGenre", to="movies.genre"),
        ),
        migrations.CreateModel(
            name="UserGenre",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("genre", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="subscribers", to="movies.genre")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="genre_subscriptions", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "unique_together": {("user", "genre")},
            },
        ),
        migrations.CreateModel(
            name="Rating",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("value", models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(5)])),
                ("comment", models.TextField(blank=True, null=True)),
                ("created", models.DateTimeField(auto_now_add=True)),
                ("updated", models.DateTimeField(auto_now=True)),
                ("movie", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="ratings", to="movies.movie")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="ratings", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("value__gte", 1), ("value__lte", 5)),
                        name="rating_value_1_to_5",
                    ),
                ],
                "unique_together": {("user", "movie")},
            },
        ),
    ]
