from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./costings.db"
    COMPANY_NAME: str = "Garment Costing"

    # Audit version tags written into every record
    APP_VERSION: str = "2.0.0"
    CALC_VERSION: str = "factorySheet_v1"

    DEFAULT_CURRENCY: str = "$"
    FIXED_ROC_PCT: float = 2.5  # factory standard, not user-editable
    DEFAULT_WASTAGE_PCT: float = 8.0

    # Photo codec
    PHOTO_MAX_DIMENSION: int = 1024
    PHOTO_QUALITY: float = 0.82
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10MB

    BACKUP_SCHEMA: str = "garment-costing-backup-v2"

    class Config:
        env_file = ".env"


settings = Settings()
