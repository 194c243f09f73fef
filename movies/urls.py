from django.urls import path
from . import views

app_name = "movies"

urlpatterns = [
    path("movies", views.api_movies, name="api_movies"),
    path("movies/<int:movie_id>", views.api_movie, name="api_movie"),
    path("genres", views.api_genres, name="api_genres"),
    path("register", views.api_register, name="api_register"),
    path("login", views.api_login, name="api_login"),
    path("logout", views.api_logout, name="api_logout"),
    path("ratings", views.api_rate, name="api_rate"),
    path("recommendations", views.api_recommendations, name="api_recommendations"),
]
