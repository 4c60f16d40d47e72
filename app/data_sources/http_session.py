"""The HTTP session shared by both upstream clients."""
import requests

from app.config import settings

session = requests.Session()
session.headers.update({"User-Agent": settings.user_agent, "Accept": "application/json"})
