from django import forms
from django.contrib.auth import get_user_model

from .models import MAX_RATING, MIN_RATING
from .recommendations import DEFAULT_LIMIT


class RegisterForm(forms.Form):
    email = forms.EmailField(max_length=150)
    password = forms.CharField(min_length=1, strip=False)
    name = forms.CharField(max_length=150, required=False)

    def clean_email(self):
        email = self.cleaned_data["email"].lower()
        if get_user_model().objects.filter(username=email).exists():
            raise forms.ValidationError("User with this email already exists", code="duplicate")
        return email


class LoginForm(forms.Form):
    email = forms.EmailField()
    password = forms.CharField(strip=False)


class RatingForm(forms.Form):
    movieId = forms.IntegerField()
    value = forms.IntegerField(min_value=MIN_RATING, max_value=MAX_RATING)
    comment = forms.CharField(required=False, empty_value=None)

    def clean_value(self):
        # reject strings/bools; the JSON body has to carry a number
        raw = self.data.get("value")
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise forms.ValidationError("value must be a number")
        return self.cleaned_data["value"]


class GenreSubscriptionForm(forms.Form):
    genreIds = forms.JSONField(required=False)

    def clean_genreIds(self):
        if "genreIds" not in self.data:
            raise forms.ValidationError("This field is required.")
        ids = self.cleaned_data["genreIds"]
        if ids is None:  # [] counts as empty for JSONField
            return []
        if not isinstance(ids, list) or not all(isinstance(i, int) and not isinstance(i, bool) for i in ids):
            raise forms.ValidationError("genreIds must be a list of integers")
        return ids


class MovieQueryForm(forms.Form):
    page = forms.IntegerField(min_value=1, required=False)
    limit = forms.IntegerField(min_value=1, max_value=100, required=False)
    genre = forms.CharField(required=False)
    search = forms.CharField(required=False)

    def clean_page(self):
        return self.cleaned_data["page"] or 1

    def clean_limit(self):
        return self.cleaned_data["limit"] or 20


class RecommendationQueryForm(forms.Form):
    limit = forms.IntegerField(min_value=1, max_value=100, required=False)

    def clean_limit(self):
        return self.cleaned_data["limit"] or DEFAULT_LIMIT
