from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    # App settings
    PROJECT_NAME: str = "FinFamily"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173", "http://localhost:8000"]
    )

    # DynamoDB
    DYNAMO_REGION: str = Field(default="sa-east-1")
    DYNAMO_USERS_TABLE: str = Field(default="finfamily-users")
    DYNAMO_SUBSCRIPTIONS_TABLE: str = Field(default="finfamily-subscriptions")
    DYNAMO_TRANSACTIONS_TABLE: str = Field(default="finfamily-transactions")
    DYNAMO_CATEGORIES_TABLE: str = Field(default="finfamily-categories")
    DYNAMO_FAMILY_MEMBERS_TABLE: str = Field(default="finfamily-family-members")
    DYNAMO_ASSETS_TABLE: str = Field(default="finfamily-assets")
    DYNAMO_LIABILITIES_TABLE: str = Field(default="finfamily-liabilities")
    DYNAMO_PATTERNS_TABLE: str = Field(default="finfamily-transaction-patterns")
    DYNAMO_SUGGESTIONS_TABLE: str = Field(default="finfamily-transaction-suggestions")
    DYNAMO_AUDIT_LOGS_TABLE: str = Field(default="finfamily-audit-logs")

    # AWS S3 (report artifacts)
    S3_BUCKET_NAME: str = Field(default="finfamily-reports")
    S3_REGION: str = Field(default="sa-east-1")

    # AWS Lambda (batch data curation)
    AWS_REGION: str = Field(default="sa-east-1")
    CURATOR_LAMBDA_NAME: str = Field(default="finfamily-data-curator")

    # JWT Authentication
    JWT_SECRET_KEY: str = Field(default="change-me-in-production")
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days

    # Subscriptions
    DEFAULT_TRIAL_DAYS: int = Field(default=7)

    # OpenAI (transaction parsing, transcription, OCR)
    OPENAI_API_KEY: str = Field(default="")
    OPENAI_CHAT_MODEL: str = Field(default="gpt-4o")
    OPENAI_VISION_MODEL: str = Field(default="gpt-4o")
    OPENAI_TRANSCRIPTION_MODEL: str = Field(default="whisper-1")

    # OpenAI-compatible gateway (insights, reports, voice commands, categorization)
    AI_GATEWAY_BASE_URL: str = Field(default="https://ai.gateway.lovable.dev/v1")
    AI_GATEWAY_API_KEY: str = Field(default="")
    AI_GATEWAY_MODEL: str = Field(default="google/gemini-2.5-flash")

    # Language the assistant answers in; also passed to transcription
    ASSISTANT_LANGUAGE: str = Field(default="pt")

    # WhatsApp Cloud API
    WHATSAPP_ACCESS_TOKEN: str = Field(default="")
    WHATSAPP_PHONE_NUMBER_ID: str = Field(default="")
    WHATSAPP_WEBHOOK_TOKEN: str = Field(default="")
    WHATSAPP_GRAPH_URL: str = Field(default="https://graph.facebook.com/v18.0")
    APP_URL: str = Field(default="http://localhost:3000")


settings = Settings()
