"""Définition et chargement des paramètres de configuration applicative.

Objectif du module
------------------
- Centraliser les paramètres (env/.env) via Pydantic Settings
- Résoudre le fichier `.env` à utiliser selon la stratégie: ENV_FILE > .env.{APP_ENV} > .env
"""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Détermination du fichier .env à utiliser avec priorité:
# 1) ENV_FILE (chemin explicite)
# 2) .env.{APP_ENV} si présent
# 3) .env (défaut)
_cwd = Path.cwd()
_env_file_from_env = os.getenv("ENV_FILE")
if _env_file_from_env:
    _ENV_FILE_PATH = _env_file_from_env
else:
    _app_env = os.getenv("APP_ENV", "dev")
    _candidate_specific = _cwd / f".env.{_app_env}"
    _candidate_default = _cwd / ".env"
    if _candidate_specific.exists():
        _ENV_FILE_PATH = _candidate_specific
    else:
        _ENV_FILE_PATH = _candidate_default


class Settings(BaseSettings):
    """Modèle de configuration chargé depuis l'environnement et .env."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE_PATH,
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
    )
    APP_NAME: str = "content-model-backend"
    APP_ENV: str = "dev"
    APP_DEBUG: bool = False
    APP_HOST: str = "localhost"
    APP_PORT: int = 5000
    LOG_LEVEL: str = "DEBUG"
    LOG_JSON: bool = False

    DATABASE_URL: str | None = None
    # Crée les tables au démarrage (dev/sqlite); en prod on passe par Alembic
    DB_CREATE_ALL: bool = True

    # JWT/Auth
    JWT_SECRET: str = "dev-secret-change-me"
    JWT_ALG: str = "HS256"

    # Cible de rendu (frontend) et navigateur headless
    FRONTEND_URL: str = "http://localhost:3000"
    REMOTE_PLAYWRIGHT: str | None = None
    BROWSER_TIMEOUT_MS: int = 30000
    SCREENSHOT_POLL_INTERVAL_MS: int = 200
    SCREENSHOT_POLL_MAX_ATTEMPTS: int = 150

    # Stockage des images (Cloudinary); vide => stockage mémoire
    CLOUDINARY_URL: str | None = None
    ASSET_STORE_API_URL: str = "https://api.cloudinary.com/v1_1"
    ASSET_DELIVERY_URL: str = "https://res.cloudinary.com"
    SCREENSHOTS_FOLDER_BASE: str | None = None

    # Secret partagé permettant au pipeline de lire un modèle PRIVATE
    PREVIEW_BYPASS_SECRET: str | None = None

    # Exécution des régénérations: "celery" | "inline" | "off"
    SCREENSHOT_DISPATCH: str = "celery"
    CELERY_BROKER_URL: str = "redis://redis:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/1"

    MAINTENANCE_MODE: bool = False

    @property
    def screenshots_folder(self) -> str:
        """Dossier racine des captures, séparé entre production et staging."""
        if self.SCREENSHOTS_FOLDER_BASE:
            return self.SCREENSHOTS_FOLDER_BASE.rstrip("/")
        if self.APP_ENV == "production":
            return "app/public/production"
        return "app/public/staging"


def get_settings() -> Settings:
    """Construit et retourne la configuration de l'application."""
    return Settings()
