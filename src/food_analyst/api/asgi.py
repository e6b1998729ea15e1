"""ASGI entrypoint for the food analyst API."""

from food_analyst.api.app import create_app
from food_analyst.containers import build_container

app = create_app(build_container())
