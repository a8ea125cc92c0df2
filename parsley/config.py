from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""
    
    # Graph Storage Configuration
    graph_backend: str = "json"  # "json" or "neo4j"
    graph_storage_path: Optional[str] = "data/graph_data.json"
    
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_username: str = "neo4j"
    neo4j_password: str = "neo4j"
    
    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    
    # Search Configuration
    default_time_range: int = 30
    default_time_range_units: str = "minutes"
    # Scale the converted range to milliseconds before applying it to pageOpenTime
    search_window_millis: bool = False
    
    # Logging Configuration
    log_level: str = "INFO"
    log_file: str = "logs/app.log"
    
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"
    
    @property
    def log_dir(self) -> Path:
        """Get log directory path."""
        return Path(self.log_file).parent
    
    def ensure_directories(self):
        """Ensure necessary directories exist."""
        self.log_dir.mkdir(parents=True, exist_ok=True)
        if self.graph_storage_path:
            Path(self.graph_storage_path).parent.mkdir(parents=True, exist_ok=True)


settings = Settings()
settings.ensure_directories()
