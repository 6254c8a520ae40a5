"""Paramflow core package."""

from paramflow.classifier import ExpansionBudget, classify, classify_parameter
from paramflow.cli import main
from paramflow.form import render_form
from paramflow.generator import generate_module
from paramflow.naming import resolve_operation_name
from paramflow.wire import render_parameter_descriptors, render_wire

__all__ = [
    "main",
    "ExpansionBudget",
    "classify",
    "classify_parameter",
    "generate_module",
    "render_form",
    "render_parameter_descriptors",
    "render_wire",
    "resolve_operation_name",
]
