from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongo_url: str = Field(default="mongodb://localhost:27017")
    mongo_db_name: str = Field(default="messenger")

    # realtime bus; without it events go to local websocket connections only
    redis_url: Optional[str] = None

    # push; without a service account push calls are dropped
    fcm_service_account_file: Optional[str] = None
    fcm_project_id: Optional[str] = None

    stripe_secret_key: str = Field(default="")
    stripe_endpoint_secret: str = Field(default="")
    stripe_currency: str = Field(default="usd")
    stripe_refresh_url: str = Field(default="https://app.page.link/stripefailed")
    stripe_return_url: str = Field(default="https://app.page.link/stripesuccess")

    images_directory: str = Field(default="public/images/")
    attachments_directory: str = Field(default="public/attachments/")

    log_level: str = Field(default="INFO")


settings = Settings()
