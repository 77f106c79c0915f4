import os
from typing import List

class Settings:
    def _split_csv(self, raw: str, *, default: List[str]) -> List[str]:
        parts = [p.strip() for p in (raw or "").split(",")]
        return [p for p in parts if p] or default

    def _int(self, name: str, default: int) -> int:
        raw = (os.getenv(name) or "").strip()
        if not raw:
            return default
        try:
            return int(raw)
        except Exception:
            return default

    def __init__(self) -> None:
        self.env = os.getenv('APP_ENV', 'local')
        self.db_url = os.getenv('DATABASE_URL', 'postgresql://localhost/triact')
        # Comma-separated list of allowed CORS origins for the invoice viewer frontend.
        # This is the only CORS policy the API applies.
        self.cors_origins = self._split_csv(
            os.getenv("CORS_ORIGINS", "").strip() or os.getenv("FRONTEND_URL", "").strip(),
            default=["http://localhost:3000", "http://127.0.0.1:3000"],
        )
        self.api_version = os.getenv("APP_VERSION", "0.1.0").strip() or "0.1.0"
        self.invoice_currency_prefix = os.getenv("INVOICE_CURRENCY_PREFIX", "Rs.").strip() or "Rs."
        self.invoice_tmp_dir = os.getenv("INVOICE_TMP_DIR", "").strip() or None
        # Order creation holds row locks while rendering/uploading; keep both bounded.
        self.db_lock_timeout_ms = max(100, self._int("DB_LOCK_TIMEOUT_MS", 5000))
        self.db_statement_timeout_ms = max(1000, self._int("DB_STATEMENT_TIMEOUT_MS", 30000))

settings = Settings()
