from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"

    rules_file: str = "data/rules.json"
    payment_methods_file: str = "data/payment_methods.json"
    conversion_rates_file: str = "data/conversion_rates.json"
    transactions_file: str = "data/transactions.json"

    default_base_rate: float = 1.0
    default_miles_currency_id: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MILEWISE_",
        extra="ignore",
    )


settings = Settings()
