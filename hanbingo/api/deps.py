from __future__ import annotations

from functools import lru_cache

import redis
from fastapi import Depends

from hanbingo.agents.autogen_config import has_llm_credentials
from hanbingo.config import GameConfig, config_from_env
from hanbingo.infra.redis_client import create_redis
from hanbingo.item_pool import ItemSource
from hanbingo.sessions import SessionRegistry


_registry = SessionRegistry()


@lru_cache(maxsize=1)
def _shared_redis() -> redis.Redis:
    # Sessions outlive requests and keep publishing, so the client is process-wide.
    return create_redis()


def get_redis() -> redis.Redis:
    return _shared_redis()


def get_sessions() -> SessionRegistry:
    return _registry


def get_config() -> GameConfig:
    return config_from_env()


def get_item_source(config: GameConfig = Depends(get_config)) -> ItemSource | None:
    if not config.llm_items or not has_llm_credentials():
        return None

    from hanbingo.agents.item_pool_writer import fetch_item_pool

    return fetch_item_pool
