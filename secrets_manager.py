"""
Credential and repository configuration for the Prismic migration CLI

Everything is supplied out of band through environment variables, optionally
loaded from a .env.local/.env file in the working directory.
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional, Dict, List

from dotenv import load_dotenv

from config import ENV_FILES
from logging_config import logger


class ConfigurationError(ValueError):
    """A required configuration value is missing"""

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(
            f"Missing required environment variable(s): {', '.join(self.missing)}"
        )


# Environment variable name for each settings attribute
ENVIRONMENT_VARIABLES: Dict[str, str] = {
    "source_repo": "Source_Repo",
    "destination_repo": "Destination_Repo",
    "source_email": "Repo_Login_Email",
    "source_password": "Repo_Login_Password",
    "destination_email": "Prismic_Email",
    "destination_password": "Prismic_Password",
    "write_api_key": "Prismic_Write_API_Key",
    "migration_api_key": "Migration_Api_Key",
    "project_path": "Project_Path",
}


@dataclass
class MigrationSettings:
    """Repository identifiers and credentials for one migration"""

    source_repo: Optional[str] = None
    destination_repo: Optional[str] = None
    source_email: Optional[str] = None
    source_password: Optional[str] = None
    destination_email: Optional[str] = None
    destination_password: Optional[str] = None
    write_api_key: Optional[str] = None
    migration_api_key: Optional[str] = None
    project_path: Optional[str] = None

    def require(self, *names: str) -> "MigrationSettings":
        """Raise ConfigurationError unless every named setting has a value"""
        missing = [ENVIRONMENT_VARIABLES[name] for name in names if not getattr(self, name)]
        if missing:
            raise ConfigurationError(missing)
        return self

    def redacted(self) -> Dict[str, Optional[str]]:
        """Settings with credentials masked, for logging and `status` output"""
        visible = {"source_repo", "destination_repo", "project_path"}
        result = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if item.name in visible or value is None:
                result[item.name] = value
            else:
                result[item.name] = "***"
        return result


class SecretsManager:
    """Loads migration settings from the environment"""

    def __init__(self, env_files: Optional[List[str]] = None):
        self.env_files = env_files if env_files is not None else ENV_FILES

    def load_env_files(self, env_file: Optional[str] = None) -> Optional[Path]:
        """Load the first existing env file; explicit file takes priority"""
        candidates = [env_file] if env_file else self.env_files
        for candidate in candidates:
            path = Path(candidate)
            if path.exists():
                load_dotenv(path)
                logger.debug(f"Loaded environment from {path}")
                return path
        return None

    def get_from_environment(self, env_file: Optional[str] = None) -> MigrationSettings:
        """Build MigrationSettings from environment variables"""
        self.load_env_files(env_file)
        values = {
            attribute: os.getenv(variable) or None
            for attribute, variable in ENVIRONMENT_VARIABLES.items()
        }
        return MigrationSettings(**values)


# Global secrets manager instance
secrets_manager = SecretsManager()
