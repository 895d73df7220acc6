from pydantic_settings import BaseSettings
from pydantic import ConfigDict

class Settings(BaseSettings):
    # Upstream chain RPC
    rpc_url: str = "https://api.mainnet-beta.solana.com"
    rpc_timeout: float = 10.0  # seconds

    # Leader geo table (built offline by leader_router.geo_mapper)
    geo_table_path: str = "data/leader_geo_map.bin"

    # Map builder
    geo_db_path: str = "GeoLite2-City.mmdb"
    builder_workers: int = 8

    # Application
    environment: str = "production"
    log_level: str = "INFO"
    enable_metrics: bool = True

    model_config = ConfigDict(env_file=".env")

settings = Settings()
