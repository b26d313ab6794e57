from functools import lru_cache
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

ALLOWED_ENV_FIELD_NAMES = frozenset(
    {
        "app_name",
        "app_env",
        "app_version",
        "log_level",
        "api_prefix",
        "allowed_origins",
        "data_store",
        "mongodb_uri",
        "mongodb_db_name",
        "mongodb_users_collection",
        "mongodb_services_collection",
        "mongodb_providers_collection",
        "mongodb_working_hours_collection",
        "mongodb_bookings_collection",
        "mongodb_connect_timeout_ms",
        "auth_secret_key",
        "auth_token_ttl_minutes",
        "default_admin_email",
        "default_admin_password",
        "default_admin_full_name",
        "availability_days_ahead",
        "availability_slot_minutes",
        "slots_per_page",
        "bookings_per_page",
        "resources_per_page",
    },
)


class Settings(BaseSettings):
    app_name: str = "Booking Platform API"
    app_env: str = "development"
    app_version: str = "0.1.0"
    log_level: str = "INFO"
    api_prefix: str = "/api"
    allowed_origins: Annotated[list[str], NoDecode] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    data_store: str = "mongodb"
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "booking_platform"
    mongodb_users_collection: str = "users"
    mongodb_services_collection: str = "services"
    mongodb_providers_collection: str = "providers"
    mongodb_working_hours_collection: str = "provider_working_hours"
    mongodb_bookings_collection: str = "bookings"
    mongodb_connect_timeout_ms: int = 2000
    auth_secret_key: str = "change-me-in-production"
    auth_token_ttl_minutes: int = 60 * 12
    default_admin_email: str = "admin"
    default_admin_password: str = "admin"
    default_admin_full_name: str = "Administrator"
    availability_days_ahead: int = 30
    availability_slot_minutes: int = 30
    slots_per_page: int = 20
    bookings_per_page: int = 10
    resources_per_page: int = 10

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        def _filter_allowed_env_fields(source):
            return {
                field_name: raw_value
                for field_name, raw_value in source().items()
                if field_name in ALLOWED_ENV_FIELD_NAMES
            }

        return (
            init_settings,
            lambda: _filter_allowed_env_fields(env_settings),
            lambda: _filter_allowed_env_fields(dotenv_settings),
            file_secret_settings,
        )

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @field_validator("data_store", mode="before")
    @classmethod
    def normalize_data_store(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("auth_token_ttl_minutes", mode="before")
    @classmethod
    def normalize_auth_token_ttl(cls, value: int | str) -> int:
        parsed_value = int(value)
        if parsed_value <= 0:
            return 60 * 12
        return parsed_value

    @field_validator("availability_days_ahead", mode="before")
    @classmethod
    def normalize_availability_days_ahead(cls, value: int | str) -> int:
        parsed_value = int(value)
        if parsed_value <= 0:
            return 30
        return min(parsed_value, 365)

    @field_validator("availability_slot_minutes", mode="before")
    @classmethod
    def normalize_availability_slot_minutes(cls, value: int | str) -> int:
        parsed_value = int(value)
        if parsed_value <= 0:
            return 30
        return min(parsed_value, 480)

    @field_validator("slots_per_page", mode="before")
    @classmethod
    def normalize_slots_per_page(cls, value: int | str) -> int:
        parsed_value = int(value)
        if parsed_value <= 0:
            return 20
        return min(parsed_value, 100)

    @field_validator("bookings_per_page", "resources_per_page", mode="before")
    @classmethod
    def normalize_list_page_size(cls, value: int | str) -> int:
        parsed_value = int(value)
        if parsed_value <= 0:
            return 10
        return min(parsed_value, 100)


@lru_cache
def get_settings() -> Settings:
    return Settings()
