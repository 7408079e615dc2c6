"""Access to configuration for the current application, if any."""

from typing import Any, Mapping, Optional

from flask import Flask, current_app, has_app_context

from . import config


def get_application_config(app: Optional[Flask] = None) -> Mapping[str, Any]:
    """
    Get the configuration of ``app``, or of the current application.

    Outside of an application context, the defaults in :mod:`.config` are
    returned.
    """
    if app is not None:
        return app.config
    if has_app_context():
        return current_app.config
    return {key: value for key, value in vars(config).items()
            if key.isupper()}


def get_config(key: str) -> Any:
    """Get a single parameter, defaulting to the value in :mod:`.config`."""
    return get_application_config().get(key, getattr(config, key))
