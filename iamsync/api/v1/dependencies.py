"""Presentation-layer dependency injection.

Components are built once per app by iamsync.core.container and stored on
app.state.container; these dependencies hand them to routes so tests can
override any of them with app.dependency_overrides.
"""

from __future__ import annotations

from fastapi import Request

from iamsync.application.interfaces import IAuditSink, IErrorChannel, IPrincipalRegistry
from iamsync.application.services import EventCorrelator, Provisioner
from iamsync.core.config import Settings
from iamsync.core.container import Container


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_settings_dep(request: Request) -> Settings:
    return get_container(request).settings


def get_registry(request: Request) -> IPrincipalRegistry:
    return get_container(request).registry


def get_provisioner(request: Request) -> Provisioner:
    return get_container(request).provisioner


def get_correlator(request: Request) -> EventCorrelator:
    return get_container(request).correlator


def get_audit_sink(request: Request) -> IAuditSink:
    return get_container(request).audit_sink


def get_error_channel(request: Request) -> IErrorChannel:
    return get_container(request).error_channel
