"""ASGI entrypoint for the meal nutrients API."""

from meal_nutrients.api.app import create_app
from meal_nutrients.containers import build_container

app = create_app(build_container())
