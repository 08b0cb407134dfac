from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")
	# Insert default sections/questions on startup when the tables are empty
	seed_reference_data: bool = Field(default=True, validation_alias="SEED_REFERENCE_DATA")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# Auth configuration
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=120, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")
	# Seed user
	seed_username: str | None = Field(default=None, validation_alias="SEED_USERNAME")
	seed_password_plain: str | None = Field(default=None, validation_alias="SEED_PASSWORD")

	# Scoring: a critical section below this percentage blocks completion
	pass_threshold: float = Field(default=70, validation_alias="PASS_THRESHOLD")
	# Insights: sections below this percentage produce an insight
	insight_threshold: float = Field(default=70, validation_alias="INSIGHT_THRESHOLD")

	# Health heuristic
	health_buffer_size: int = Field(default=24, validation_alias="HEALTH_BUFFER_SIZE")
	health_max_response_ms: float = Field(default=2000, validation_alias="HEALTH_MAX_RESPONSE_MS")
	health_weight_error: float = Field(default=0.55, validation_alias="HEALTH_WEIGHT_ERROR")
	health_weight_response: float = Field(default=0.25, validation_alias="HEALTH_WEIGHT_RESPONSE")
	health_weight_memory: float = Field(default=0.20, validation_alias="HEALTH_WEIGHT_MEMORY")

	# AskRexi chatbot
	chat_cache_enabled: bool = Field(default=True, validation_alias="CHAT_CACHE_ENABLED")
	# Phrase answers through Gemini instead of the canned templates
	chat_llm_enabled: bool = Field(default=False, validation_alias="CHAT_LLM_ENABLED")
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")

	# Housekeeping
	cleanup_retention_days: int = Field(default=7, validation_alias="CLEANUP_RETENTION_DAYS")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
