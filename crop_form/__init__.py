"""
Crop recommendation form: editable agronomic inputs, auto-fill and
recommendation requests against the backend services.
"""

from crop_form.application import FormController, FormView, create_form_controller
from crop_form.infra.backend_client import BackendClient, BackendRequestError
from crop_form.infra.config import AppConfig, get_config

__version__ = "1.0.0"
__all__ = [
    "AppConfig",
    "BackendClient",
    "BackendRequestError",
    "FormController",
    "FormView",
    "create_form_controller",
    "get_config",
]
