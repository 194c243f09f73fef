import functools
import json
import logging
import math

from django.contrib.auth import authenticate, get_user_model, login, logout
from django.core.paginator import Paginator
from django.db import transaction
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt

from .forms import (
    GenreSubscriptionForm, LoginForm, MovieQueryForm, RatingForm, RecommendationQueryForm, RegisterForm,
)
from .models import Genre, Movie, UserGenre, movie_payload, rate_movie
from .recommendations import cached, get_hybrid_recommendations, invalidate_recommendations, NEWEST_FIRST

logger = logging.getLogger(__name__)

hybrid_recommendations = cached(get_hybrid_recommendations)


def _error(message, status=400, **extra):
    return JsonResponse({"error": message, **extra}, status=status)


def _form_error(form):
    return _error("Invalid request", details=form.errors.get_json_data())


def _json_body(request):
    try:
        body = json.loads(request.body.decode("utf-8") or "{}")
    except (UnicodeDecodeError, ValueError):
        return None
    return body if isinstance(body, dict) else None


def json_errors(what):
    """Log anything unexpected and answer with a 500 JSON error."""
    def decorator(view):
        @functools.wraps(view)
        def wrapper(request, *args, **kwargs):
            try:
                return view(request, *args, **kwargs)
            except Exception:
                logger.exception("Error %s", what)
                return _error(f"Error {what}", status=500)
        return wrapper
    return decorator


def api_login_required(message):
    def decorator(view):
        @functools.wraps(view)
        def wrapper(request, *args, **kwargs):
            if not request.user.is_authenticated:
                return _error(message, status=401)
            return view(request, *args, **kwargs)
        return wrapper
    return decorator


def _user_payload(user):
    return {"id": user.id, "email": user.email, "name": user.first_name}


# ---------------- movies ----------------

@json_errors("fetching movies")
def api_movies(request):
    if request.method != "GET":
        return _error("GET required", status=405)
    form = MovieQueryForm(request.GET)
    if not form.is_valid():
        return _form_error(form)
    q = form.cleaned_data

    qs = Movie.objects.all()
    if q["genre"]:
        qs = qs.filter(genres__name=q["genre"])
    if q["search"]:
        qs = qs.filter(title__icontains=q["search"])
    qs = qs.distinct().order_by(*NEWEST_FIRST).prefetch_related("genres")

    paginator = Paginator(qs, q["limit"])
    total = paginator.count
    page, limit = q["page"], q["limit"]
    # out-of-range pages come back empty
    movies = paginator.page(page).object_list if page <= paginator.num_pages else []
    return JsonResponse({
        "movies": [movie_payload(m) for m in movies],
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit),
        },
    })


@json_errors("fetching movie")
def api_movie(request, movie_id: int):
    movie = Movie.objects.prefetch_related("genres").filter(id=movie_id).first()
    if movie is None:
        return _error("Movie not found", status=404)
    return JsonResponse(movie_payload(movie))


@json_errors("fetching genres")
@csrf_exempt
def api_genres(request):
    if request.method == "GET":
        subscribed = set()
        if request.user.is_authenticated:
            subscribed = set(UserGenre.objects.filter(user=request.user).values_list("genre_id", flat=True))
        genres = [
            {"id": g.id, "name": g.name, "subscribed": g.id in subscribed}
            for g in Genre.objects.all()
        ]
        return JsonResponse({"genres": genres})
    if request.method != "POST":
        return _error("GET or POST required", status=405)
    if not request.user.is_authenticated:
        return _error("You must be logged in to choose genres", status=401)

    body = _json_body(request)
    if body is None:
        return _error("Invalid JSON")
    form = GenreSubscriptionForm(body)
    if not form.is_valid():
        return _form_error(form)
    genres = list(Genre.objects.filter(id__in=form.cleaned_data["genreIds"]))
    with transaction.atomic():
        UserGenre.objects.filter(user=request.user).delete()
        UserGenre.objects.bulk_create([UserGenre(user=request.user, genre=g) for g in genres])
    invalidate_recommendations(request.user.id)
    return JsonResponse({"genreIds": sorted(g.id for g in genres)})


# ---------------- accounts ----------------

@json_errors("registering user")
@csrf_exempt
def api_register(request):
    if request.method != "POST":
        return _error("POST required", status=405)
    body = _json_body(request)
    if body is None:
        return _error("Invalid JSON")
    if not body.get("email") or not body.get("password"):
        return _error("Email and password are required")
    form = RegisterForm(body)
    if not form.is_valid():
        if form.has_error("email", code="duplicate"):
            return _error("User with this email already exists")
        return _form_error(form)

    data = form.cleaned_data
    user = get_user_model().objects.create_user(
        username=data["email"], email=data["email"], password=data["password"], first_name=data["name"],
    )
    logger.info("Registered user %s", user.id)
    return JsonResponse({"user": _user_payload(user), "message": "User registered successfully"})


@json_errors("logging in")
@csrf_exempt
def api_login(request):
    if request.method != "POST":
        return _error("POST required", status=405)
    body = _json_body(request)
    if body is None:
        return _error("Invalid JSON")
    form = LoginForm(body)
    if not form.is_valid():
        return _form_error(form)
    user = authenticate(
        request, username=form.cleaned_data["email"].lower(), password=form.cleaned_data["password"]
    )
    if user is None:
        return _error("Invalid email or password", status=401)
    login(request, user)
    return JsonResponse({"user": _user_payload(user)})


@json_errors("logging out")
@csrf_exempt
def api_logout(request):
    if request.method != "POST":
        return _error("POST required", status=405)
    logout(request)
    return JsonResponse({"ok": True})


# ---------------- ratings & recommendations ----------------

@json_errors("saving rating")
@csrf_exempt
@api_login_required("You must be logged in to rate movies")
def api_rate(request):
    if request.method != "POST":
        return _error("POST required", status=405)
    body = _json_body(request)
    form = RatingForm(body or {})
    if body is None or not form.is_valid():
        return _error("Invalid request. Required: movieId and value (1-5)")

    movie = Movie.objects.filter(id=form.cleaned_data["movieId"]).first()
    if movie is None:
        return _error("Movie not found", status=404)

    rating = rate_movie(request.user, movie, form.cleaned_data["value"], form.cleaned_data["comment"])
    invalidate_recommendations()
    return JsonResponse({"rating": {
        "id": rating.id,
        "userId": rating.user_id,
        "movieId": rating.movie_id,
        "value": rating.value,
        "comment": rating.comment,
    }})


@json_errors("fetching recommendations")
@api_login_required("You must be logged in to get recommendations")
def api_recommendations(request):
    form = RecommendationQueryForm(request.GET)
    if not form.is_valid():
        return _form_error(form)
    movies = hybrid_recommendations(request.user.id, form.cleaned_data["limit"])
    return JsonResponse({"movies": [movie_payload(m) for m in movies]})
