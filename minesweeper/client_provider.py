import os
import pathlib
import platform
from temporalio.client import Client
from temporalio.envconfig import ClientConfig

from minesweeper.config import Settings


# Configures and returns a Temporal Client. Connection details come from
# Settings (TEMPORAL_ADDRESS / TEMPORAL_NAMESPACE), unless the
# TEMPORAL_PROFILE environment variable names a profile in the config file.
async def get_temporal_client(settings: Settings | None = None) -> Client:
    settings = settings or Settings.from_env()
    config_file_path = get_config_file_path()
    profile_name = os.getenv("TEMPORAL_PROFILE")
    if profile_name and config_file_path.is_file():
        connect_config = ClientConfig.load_client_connect_config(
            profile=profile_name,
            config_file=str(config_file_path),
        )
        return await Client.connect(**connect_config)
    return await Client.connect(
        settings.temporal_address,
        namespace=settings.temporal_namespace,
    )


# Returns the path of the Temporal CLI config file for this operating system.
def get_config_file_path() -> pathlib.Path:
    home = pathlib.Path.home()
    system = platform.system()

    if system == "Darwin":
        return home / "Library/Application Support/temporalio/temporal.toml"
    if system == "Windows":
        app_data = os.getenv("AppData")
        if app_data is None:
            raise RuntimeError("AppData environment variable not set")
        return pathlib.Path(app_data) / "temporalio/temporal.toml"

    xdg_config_home = os.getenv("XDG_CONFIG_HOME")
    if xdg_config_home:
        return pathlib.Path(xdg_config_home) / "temporalio/temporal.toml"
    return home / ".config/temporalio/temporal.toml"
