"""
ClearLens — Supabase memory store

Table `coach_memory`: one row per user_id holding the longitudinal counters.
Every Supabase failure surfaces as PersistenceError so the pipeline can
degrade instead of failing the request.
"""

from typing import Optional

from supabase import create_client, Client

from clearlens.api_exceptions import PersistenceError
from clearlens.session_memory import CoachMemory, MemoryStore

TABLE = "coach_memory"


class SupabaseMemoryStore(MemoryStore):

    def __init__(self, url: str, key: str, client: Optional[Client] = None):
        self._url = url
        self._key = key
        self._db: Optional[Client] = client

    def get_db(self) -> Client:
        if self._db is None:
            if not self._url:
                raise RuntimeError("SUPABASE_URL not set in .env")
            if not self._key:
                raise RuntimeError("SUPABASE_KEY not set in .env")
            self._db = create_client(self._url, self._key)
        return self._db

    def load(self, user_id: str) -> CoachMemory:
        try:
            result = (
                self.get_db()
                .table(TABLE)
                .select("*")
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise PersistenceError("read", user_id, e) from e
        if result.data:
            return CoachMemory.from_dict(result.data[0])
        return CoachMemory()

    def save(self, user_id: str, memory: CoachMemory) -> None:
        row = memory.to_dict()
        row["user_id"] = user_id
        try:
            result = self.get_db().table(TABLE).upsert(row, on_conflict="user_id").execute()
        except Exception as e:
            raise PersistenceError("write", user_id, e) from e
        if not result.data:
            raise PersistenceError("write", user_id, RuntimeError("upsert returned no rows"))
