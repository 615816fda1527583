"""OpenAI client configuration for the suggestion endpoints."""

import os
from functools import lru_cache

from dotenv import load_dotenv
from openai import OpenAI

load_dotenv()

OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4.1-mini")


@lru_cache(maxsize=1)
def get_openai_client() -> OpenAI:
    """Instantiate the OpenAI client once the API key is available."""
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise RuntimeError("OPENAI_API_KEY is missing from the environment.")
    return OpenAI(api_key=api_key)


__all__ = ["get_openai_client", "OPENAI_MODEL"]
