from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    app_name: str = "panelgen"
    api_host: str = "0.0.0.0"
    api_port: int = 5000
    log_level: str = "INFO"

    mongo_url: str
    mongo_db: str = "panel"
    redis_url: str

    jwt_secret: str
    jwt_algorithm: str = "HS256"

    project_root: Path = Path.cwd()
    schema_path: Path = Path("prisma/schema.prisma")
    server_path: Path = Path("server.py")
    generated_dir: Path = Path("resources")
    generated_package: str = "resources"
    reset_script: Path = Path("scripts/reset_generated.py")
    core_dirs: list[str] = ["__pycache__"]

    system_models: list[str] = ["User", "Config"]
    system_collections: list[str] = ["users", "configs"]

    schema_push_command: str = "prisma db push --accept-data-loss --skip-generate"
    client_generate_command: str = ""
    command_output_limit: int = 10 * 1024 * 1024
    reset_output_limit: int = 20 * 1024 * 1024

    mount_generated_routes: bool = True

    def resolve(self, path: Path) -> Path:
        return path if path.is_absolute() else self.project_root / path

    @property
    def schema_file(self) -> Path:
        return self.resolve(self.schema_path)

    @property
    def server_file(self) -> Path:
        return self.resolve(self.server_path)

    @property
    def generated_root(self) -> Path:
        return self.resolve(self.generated_dir)

    @property
    def reset_script_file(self) -> Path:
        return self.resolve(self.reset_script)


settings = Settings()
