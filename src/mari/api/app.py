"""ASGI application instance."""

from dotenv import load_dotenv

from mari.api.factory import create_app

load_dotenv()

app = create_app()
