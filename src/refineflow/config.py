"""
Runtime configuration.

Values come from environment variables (or a ``.env`` file) through
python-decouple. Nothing in the workflow engine reads configuration; only
the LLM client and the command line entry point do.
"""

from typing import Optional

from decouple import config
from pydantic import BaseModel, Field

DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_MODEL = "meta-llama/llama-4-maverick-17b-128e-instruct"


class Settings(BaseModel):
    """Settings for the LLM client and the joke refinement workflow"""
    llm_api_key: Optional[str] = Field(None, description="API key for the OpenAI-compatible endpoint")
    llm_base_url: str = DEFAULT_BASE_URL
    llm_model: str = DEFAULT_MODEL
    llm_timeout: float = Field(30.0, gt=0)
    llm_max_retries: int = Field(3, ge=0)
    llm_retry_delay: float = Field(1.0, ge=0)
    max_iterations: int = Field(3, ge=1)
    log_level: str = "INFO"
    traceloop_api_key: Optional[str] = None

    @classmethod
    def from_env(cls) -> 'Settings':
        """Read settings from the environment; LLM_API_KEY falls back to GROQ_API_KEY"""
        return cls(
            llm_api_key=config('LLM_API_KEY', default=None) or config('GROQ_API_KEY', default=None),
            llm_base_url=config('LLM_BASE_URL', default=DEFAULT_BASE_URL),
            llm_model=config('LLM_MODEL', default=DEFAULT_MODEL),
            llm_timeout=config('LLM_TIMEOUT', default=30.0, cast=float),
            llm_max_retries=config('LLM_MAX_RETRIES', default=3, cast=int),
            llm_retry_delay=config('LLM_RETRY_DELAY', default=1.0, cast=float),
            max_iterations=config('MAX_ITERATIONS', default=3, cast=int),
            log_level=config('LOG_LEVEL', default="INFO"),
            traceloop_api_key=config('TRACELOOP_API_KEY', default=None),
        )
