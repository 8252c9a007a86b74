import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent / ".env")


class Settings:
    """Application settings loaded from environment variables."""

    # --- Paths ---
    base_dir: Path = Path(__file__).resolve().parent.parent
    database_url: str = os.getenv("DATABASE_URL", f"sqlite:///{base_dir / 'autoconnect.db'}")
    session_file: Path = base_dir / "session" / "linkedin_state.json"
    logs_dir: Path = base_dir / "logs"

    # --- Browser ---
    headless: bool = os.getenv("HEADLESS", "false").lower() in ("1", "true", "yes")
    collection_start_url: str = os.getenv(
        "COLLECTION_START_URL",
        "https://www.linkedin.com/search/results/people/",
    )

    # --- Message generation ---
    gemini_api_key: str = os.getenv("GEMINI_API_KEY", "")
    gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash-lite")
    generation_timeout: float = float(os.getenv("GENERATION_TIMEOUT", "30"))
    fallback_template: str = os.getenv("FALLBACK_TEMPLATE", "")
    connection_note_max_chars: int = 300

    # --- Page probe retry policy ---
    probe_attempts: int = int(os.getenv("PROBE_ATTEMPTS", "10"))
    probe_interval: float = float(os.getenv("PROBE_INTERVAL", "0.5"))
    probe_jitter: float = float(os.getenv("PROBE_JITTER", "0.1"))

    # --- Workflow pacing (anti-detection heuristics, seconds) ---
    inter_profile_delay: float = float(os.getenv("INTER_PROFILE_DELAY", "20"))
    inter_profile_jitter: float = float(os.getenv("INTER_PROFILE_JITTER", "5"))
    typing_total_seconds: float = float(os.getenv("TYPING_TOTAL_SECONDS", "8"))
    post_fill_delay: float = float(os.getenv("POST_FILL_DELAY", "3"))
    click_settle_delay: float = float(os.getenv("CLICK_SETTLE_DELAY", "1"))
    send_verify_timeout: float = float(os.getenv("SEND_VERIFY_TIMEOUT", "10"))
    page_settle_timeout: float = float(os.getenv("PAGE_SETTLE_TIMEOUT", "15"))
    completion_return_delay: float = float(os.getenv("COMPLETION_RETURN_DELAY", "3"))

    # --- Collection ---
    collection_scan_interval: float = float(os.getenv("COLLECTION_SCAN_INTERVAL", "3"))
    mutation_poll_interval: float = float(os.getenv("MUTATION_POLL_INTERVAL", "0.5"))
    exhausted_after_scans: int = int(os.getenv("EXHAUSTED_AFTER_SCANS", "3"))
    max_pages: int = int(os.getenv("MAX_PAGES", "4"))
    pagination_attempts: int = int(os.getenv("PAGINATION_ATTEMPTS", "3"))

    # --- LinkedIn ---
    daily_limit: int = int(os.getenv("DAILY_LIMIT", "50"))


settings = Settings()
