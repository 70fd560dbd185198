from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./kfss.db"
    LOG_LEVEL: str = "INFO"

    # Quotation letterhead
    COMPANY_NAME: str = "Fire Safety Solutions"
    COMPANY_ADDRESS: str = "123 Safety Street, Fire City, FC 12345"
    COMPANY_PHONE: str = "(555) 123-4567"
    COMPANY_EMAIL: str = "info@firesafetysolutions.com"
    COMPANY_WEBSITE: str = "www.firesafetysolutions.com"
    QUOTE_VALID_DAYS: int = 30

    # Bounded history of past calculations
    RECENT_LIMIT: int = 5

    class Config:
        env_file = ".env"


settings = Settings()
