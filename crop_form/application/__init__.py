from .form_controller import (
    AUTO_FILL_WARNING,
    RECOMMEND_WARNING,
    FormController,
    Operation,
    create_form_controller,
)
from .view import FormView, build_form_view

__all__ = [
    "AUTO_FILL_WARNING",
    "RECOMMEND_WARNING",
    "FormController",
    "FormView",
    "Operation",
    "build_form_view",
    "create_form_controller",
]
