import json
import hashlib
from typing import Any, Optional

import redis

from pika.config.settings import get_settings

settings = get_settings()


class ExtractionCache:
    """Caches LLM syllabus extractions so re-uploading a syllabus skips the model call."""

    def __init__(self, redis_url: str = settings.redis_url, ttl_seconds: int = settings.extraction_cache_ttl_seconds):
        self.redis_client = redis.from_url(redis_url, decode_responses=True)
        self.ttl_seconds = ttl_seconds

    def get(self, text_hash: str) -> Optional[Any]:
        """Retrieve cached model JSON by text hash."""
        cached = self.redis_client.get(f"extraction:{text_hash}")
        if cached:
            return json.loads(cached)
        return None

    def set(self, text_hash: str, parsed_json: Any) -> None:
        self.redis_client.setex(
            f"extraction:{text_hash}",
            self.ttl_seconds,
            json.dumps(parsed_json, default=str)
        )

    def delete(self, text_hash: str) -> None:
        """Invalidate cache entry."""
        self.redis_client.delete(f"extraction:{text_hash}")

    @staticmethod
    def hash_text(provider: str, text: str) -> str:
        """Generate hash from provider and syllabus text."""
        data = json.dumps({"provider": provider, "text": text}, sort_keys=True)
        return hashlib.sha256(data.encode()).hexdigest()[:16]

    def health_check(self) -> bool:
        """Check Redis connection."""
        try:
            self.redis_client.ping()
            return True
        except redis.RedisError:
            return False
