"""Settings for the qapisql compiler."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class QapiSettings(BaseSettings):
    """qapisql configuration settings."""

    LOG_LEVEL: str = "INFO"

    # Identifier quoting: mysql -> `name`, ansi -> "name"
    SQL_DIALECT: Literal["mysql", "ansi"] = "mysql"

    # Translations
    DEFAULT_LANG_CODE: str = "en-US"
    ALL_LANG_CODE: str = "all"

    # Naming conventions
    PRIMARY_KEY_COLUMN: str = "ID"
    FOREIGN_KEY_SUFFIX: str = "ID"
    POLYMORPHIC_TYPE_SUFFIX: str = "Type"

    # Compilation
    MAX_RELATION_DEPTH: int = 8
    STRICT_SORT: bool = True
    DEFAULT_JOIN_TYPE: Literal["INNER JOIN", "LEFT JOIN", "RIGHT JOIN"] = "LEFT JOIN"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = QapiSettings()
