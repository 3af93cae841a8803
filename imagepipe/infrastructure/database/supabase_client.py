from __future__ import annotations

import hashlib
from dataclasses import dataclass

from supabase import Client, create_client

from imagepipe.config import Settings


@dataclass(slots=True)
class UserInfo:
    id: str
    email: str | None


def create_supabase_client(settings: Settings) -> Client | None:
    if settings.supabase_disabled or not settings.supabase_url or not settings.supabase_anon_key:
        return None
    return create_client(settings.supabase_url, settings.supabase_anon_key)


class SupabaseAuthAdapter:
    """Small wrapper to validate Supabase access tokens.

    Without a Supabase client (SUPABASE_DISABLED=1), any token is accepted and
    mapped to a deterministic fake user.
    """

    def __init__(self, client: Client | None) -> None:
        self._client = client

    def validate_token(self, token: str) -> UserInfo:
        if not token:
            raise ValueError("Missing access token")
        if self._client is None:
            fake_id = "fake-" + hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
            return UserInfo(id=fake_id, email=None)
        try:  # pragma: no cover - network path
            res = self._client.auth.get_user(token)
        except Exception as exc:  # pragma: no cover - network path
            raise ValueError(f"Invalid access token: {exc}") from exc
        user = res.user if res else None
        if not user:
            raise ValueError("Invalid access token")
        return UserInfo(id=user.id, email=user.email)
