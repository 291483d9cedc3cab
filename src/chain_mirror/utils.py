import asyncio
import os
from functools import wraps
from hexbytes import HexBytes
from loguru import logger
from pathlib import Path
import random
from dynaconf import Dynaconf, Validator

from chain_mirror.errors import NotFoundError


def hex_to_str(hex_value: HexBytes) -> str:
    # Ensure input is HexBytes type
    if not isinstance(hex_value, HexBytes):
        raise TypeError(f"Expected HexBytes, got {type(hex_value)}")

    # Convert to hex string, maintaining '0x' prefix
    return '0x' + hex_value.hex().removeprefix('0x')

def load_config(file_name: str | None = None) -> Dynaconf:
    """Load and validate the mirror configuration

    The file is looked up as given, then relative to the project root.
    Every key can be overridden from the environment with the
    ``CHAIN_MIRROR_`` prefix (e.g. ``CHAIN_MIRROR_WORKSPACE__RPC_SERVER``).

    Params:
        file_name (str): Name or path of the config file to load

    Returns:
        Dynaconf: Validated configuration object
    """
    file_name = file_name or os.getenv("CHAIN_MIRROR_CONFIG", "config.yml")
    config_path = Path(file_name)
    if not config_path.exists():
        project_root = Path(__file__).resolve().parent.parent.parent
        config_path = project_root / file_name
    if not config_path.exists():
        raise NotFoundError(f"Configuration file {file_name} not found")

    settings = Dynaconf(
        settings_files=[str(config_path)],
        envvar_prefix="CHAIN_MIRROR",
        validators=[
            # Validate structure and types
            Validator('workspace.name', must_exist=True, is_type_of=str),
            Validator('workspace.rpc_server', must_exist=True, is_type_of=str,
                     condition=lambda x: x == x.strip() and len(x) > 0,
                     messages={"condition": "RPC server must be a non-empty address with no leading/trailing spaces"}
            ),
            Validator('workspace.network_id', must_exist=True, is_type_of=int),
            Validator('storage.type', default='memory', is_in=['memory', 'firestore']),
            Validator('sync.mode', default='full', is_in=['full', 'server', 'local']),
            Validator('sync.first_block', default=1, gte=0),
            Validator('sync.max_concurrency', default=20, gte=1),
            Validator('sync.reconnect_delay', default=5),
            Validator('sync.poll_interval', default=2),
            Validator('sync.rpc_retries', default=3, gte=1),
            Validator('artifacts.directories', default=['.'], is_type_of=list),
            Validator('metrics.enabled', default=False, is_type_of=bool),
            Validator('metrics.port', default=8000, is_type_of=int),
            Validator('metrics.addr', default='0.0.0.0'),
            Validator('logging.dir', default='logs'),
            Validator('logging.level', default='INFO'),
        ]
    )
    # Validate all settings at once
    settings.validators.validate()

    return settings

# Decorator for implementing retry logic with exponential backoff for async functions
def async_retry(
    retries: int = 3,
    base_delay: float = 1,
    exponential_backoff: bool = True,
    jitter: bool = True,
    exceptions: tuple = (Exception,),
):
    """
    Decorator for implementing retry logic with exponential backoff for async functions.

    The number of attempts can be overridden per instance through a
    ``retries`` attribute on the decorated method's ``self``.

    :param retries: int, number of retry attempts
    :param base_delay: float, base delay between retries in seconds
    :param exponential_backoff: bool, whether to use exponential backoff
    :param jitter: bool, whether to add random jitter to the delay
    :param exceptions: tuple, exception types that trigger a retry
    :return: function, decorated function
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            attempts = getattr(args[0], 'retries', retries) if args else retries
            for attempt in range(1, attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt == attempts:
                        logger.error(
                            f"All retry attempts failed for {func.__name__}: {str(e)}"
                        )
                        raise

                    delay = (
                        base_delay * (2 ** (attempt - 1))
                        if exponential_backoff
                        else base_delay
                    )
                    if jitter:
                        delay *= random.uniform(1.0, 1.5)

                    logger.warning(
                        f"Attempt {attempt} failed for {func.__name__}. Retrying in {delay:.2f} seconds. Error: {str(e)}"
                    )
                    await asyncio.sleep(delay)

        return wrapper
    return decorator
