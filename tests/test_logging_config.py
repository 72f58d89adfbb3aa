# =============================================================================
# File: tests/test_logging_config.py
# =============================================================================

import logging

import pytest

from viewsync.common.exceptions.exceptions import InfrastructureError
from viewsync.config.logging_config import get_logger, logger_name_for_env_key
from viewsync.infra.persistence import pg_client


def test_env_key_resolves_logger_with_underscores():
    get_logger("viewsync.user_account.cascade")

    assert logger_name_for_env_key("LOGLEVEL_VIEWSYNC_USER_ACCOUNT_CASCADE") == "viewsync.user_account.cascade"


def test_env_key_resolves_package_logger():
    get_logger("viewsync.user_account.projectors")

    assert logger_name_for_env_key("LOGLEVEL_VIEWSYNC_USER_ACCOUNT") == "viewsync.user_account"


def test_unknown_env_key_reads_underscores_as_dots():
    assert logger_name_for_env_key("LOGLEVEL_VIEWSYNC_NOT_CREATED_YET") == "viewsync.not.created.yet"
    assert "viewsync.not.created.yet" not in logging.root.manager.loggerDict


async def test_pool_lookup_without_init_raises_infrastructure_error():
    with pytest.raises(InfrastructureError):
        await pg_client.get_pool(ensure_initialized=False)
