# SPDX-License-Identifier: Apache-2.0

"""
MekarMap - Flask Application Entry Point

This module builds the Flask application with OpenAPI support, wires the
storage, session, offline queue, localization and report services into an
explicit application state, and registers the view blueprints.
"""

import os
import atexit
import logging
from typing import Any, Dict, Mapping, Optional
from flask import redirect
from flask_openapi3 import OpenAPI, Info

from .observability.config import setup_observability
from .observability.middleware import add_observability_middleware
from .middleware.error_handler import ErrorHandlerMiddleware, register_custom_error_handlers
from .domain.visibility import HOME_ROUTE
from .services.storage import StorageService, StorageWriteError
from .services.catalog import ReferenceCatalog
from .services.record_store import RecordStore
from .services.session import SessionService, DEFAULT_LOGIN_LATENCY
from .services.offline import ConnectivityMonitor, OfflineQueueManager, DEFAULT_SYNC_LATENCY
from .services.localization import LocalizationService, DEFAULT_LANGUAGE
from .services.reports import ReportService
from .services.asset_cache import AssetCache, AssetFetchError, RequestsFetcher, DEFAULT_CACHE_VERSION
from .utils.context import AppState

logger = logging.getLogger(__name__)

info = Info(
    title="MekarMap",
    version="1.0.0",
    description="Offline-first citizen issue reporting core"
)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


def load_config(overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """
    Read the application configuration from the environment.

    Args:
        overrides: Values taking precedence over the environment

    Returns:
        Configuration mapping for ``app.config``
    """
    config = {
        'ENVIRONMENT': os.getenv('ENVIRONMENT', 'development'),
        'REDIS_URL': os.getenv('REDIS_URL', 'redis://localhost:6379/0'),
        'STORAGE_NAMESPACE': os.getenv('STORAGE_NAMESPACE', 'mekarmap'),
        'LOGIN_LATENCY': float(os.getenv('LOGIN_LATENCY', DEFAULT_LOGIN_LATENCY)),
        'SYNC_LATENCY': float(os.getenv('SYNC_LATENCY', DEFAULT_SYNC_LATENCY)),
        'DEFAULT_LANGUAGE': os.getenv('DEFAULT_LANGUAGE', DEFAULT_LANGUAGE),
        'ASSET_ORIGIN': os.getenv('ASSET_ORIGIN', ''),
        'ASSET_CACHE_VERSION': os.getenv('ASSET_CACHE_VERSION', DEFAULT_CACHE_VERSION),
        'PRECACHE_ON_START': _env_flag('PRECACHE_ON_START', 'false'),
        'OTEL_ENABLED': _env_flag('OTEL_ENABLED', 'false'),
    }
    if overrides:
        config.update(overrides)
    config['DEBUG'] = config['ENVIRONMENT'] == 'development'
    return config


def build_state(config: Mapping[str, Any], storage: Optional[StorageService] = None,
                fetcher=None) -> AppState:
    """
    Construct every service from the configuration.

    Args:
        config: Application configuration
        storage: Pre-built storage service, connects to REDIS_URL if omitted
        fetcher: Asset fetcher, an HTTP fetcher for ASSET_ORIGIN if omitted

    Returns:
        AppState holding the services
    """
    storage = storage or StorageService(config['REDIS_URL'], config['STORAGE_NAMESPACE'])
    catalog = ReferenceCatalog()
    record_store = RecordStore(storage, catalog)
    connectivity = ConnectivityMonitor()
    offline = OfflineQueueManager(storage, record_store, connectivity, config['SYNC_LATENCY'])

    if fetcher is None and config.get('ASSET_ORIGIN'):
        fetcher = RequestsFetcher(config['ASSET_ORIGIN'])
    asset_cache = AssetCache(storage, fetcher, config['ASSET_CACHE_VERSION']) if fetcher is not None else None

    return AppState(
        storage=storage,
        catalog=catalog,
        record_store=record_store,
        session=SessionService(storage, record_store, config['LOGIN_LATENCY']),
        connectivity=connectivity,
        offline=offline,
        localization=LocalizationService(storage, catalog.string_tables(), config['DEFAULT_LANGUAGE']),
        reports=ReportService(record_store, offline),
        asset_cache=asset_cache
    )


def _precache(asset_cache: AssetCache) -> None:
    try:
        asset_cache.install()
        asset_cache.activate()
    except (AssetFetchError, StorageWriteError) as e:
        logger.warning(f"Shell asset precache failed: {str(e)}")


def create_app(test_config: Optional[Mapping[str, Any]] = None,
               storage: Optional[StorageService] = None, fetcher=None) -> OpenAPI:
    """
    Application factory.

    Args:
        test_config: Configuration overrides
        storage: Pre-built storage service
        fetcher: Asset fetcher used by the shell asset cache

    Returns:
        Configured Flask application
    """
    config = load_config(test_config)
    setup_observability(config['ENVIRONMENT'], config['OTEL_ENABLED'])

    app = OpenAPI(__name__, info=info)
    app.config.update(config)

    add_observability_middleware(app)

    ErrorHandlerMiddleware(app)
    register_custom_error_handlers(app)

    state = build_state(app.config, storage, fetcher)
    app.extensions['mekarmap'] = state
    app.localization_service = state.localization

    try:
        seeded = state.record_store.initialize()
        if seeded:
            logger.info(f"Seeded collections: {', '.join(seeded)}")
    except StorageWriteError as e:
        logger.warning(f"Collections could not be seeded, serving seed data: {str(e)}")

    state.offline.start()
    atexit.register(state.close)

    if state.asset_cache is not None and app.config['PRECACHE_ON_START']:
        _precache(state.asset_cache)

    from .routes.auth import auth_bp
    from .routes.home import home_bp
    from .routes.reports import reports_bp
    from .routes.settings import settings_bp

    app.register_api(auth_bp)
    app.register_api(home_bp)
    app.register_api(reports_bp)
    app.register_api(settings_bp)

    @app.route('/')
    def index():
        """Entry point, redirects to the dashboard."""
        return redirect(HOME_ROUTE)

    return app


if __name__ == '__main__':
    application = create_app()
    application.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=application.config['DEBUG']
    )
