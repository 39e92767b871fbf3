"""HTTP handlers for health and service management."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

from flask import Blueprint, jsonify, request

from .api import (
    ErrorResponse,
    RegisterServiceRequest,
    ServiceData,
    ServiceIDRequest,
    ServiceMetrics,
)
from .binding import BindError, bind_request
from .manager import ServiceManager
from .types import ServiceError, ServiceStatus


def health_check() -> dict[str, str]:
    """Report that the server is up."""
    return {"status": "ok"}


def _error(status: int, message: str, details: str) -> Any:
    return jsonify(ErrorResponse(message, details).to_dict()), status


def _bind_error(exc: BindError) -> Any:
    return jsonify(exc.error.to_dict()), exc.status


def _message(text: str) -> Any:
    return jsonify({"message": text}), HTTPStatus.OK


def create_manager_blueprint(service_manager: ServiceManager) -> Blueprint:
    """Build the /manager routes bound to ``service_manager``."""
    bp = Blueprint("manager", __name__, url_prefix="/manager")

    @bp.post("/register")
    def register_service() -> Any:
        try:
            req = bind_request(RegisterServiceRequest, request.get_data())
        except BindError as exc:
            return _bind_error(exc)
        try:
            service_manager.register_service(
                req.service_name,
                req.command_name,
                req.command_args,
                req.execute_directory,
            )
        except ServiceError as exc:
            return _error(
                HTTPStatus.UNPROCESSABLE_ENTITY,
                f"cannot register service '{req.service_name}'",
                str(exc),
            )
        return _message("register service successful")

    @bp.get("/services")
    def get_services() -> Any:
        response = [
            ServiceData(
                id=service.id,
                name=service.name,
                cmd=service.command,
                execute_directory=service.execute_directory,
                is_running=service.status() is ServiceStatus.RUNNING,
            ).to_dict()
            for service in service_manager.get_all_services()
        ]
        return jsonify(response), HTTPStatus.OK

    @bp.post("/start")
    def start_service() -> Any:
        try:
            req = bind_request(ServiceIDRequest, request.get_data())
        except BindError as exc:
            return _bind_error(exc)
        try:
            service_manager.start_service(req.service_id)
        except ServiceError as exc:
            return _error(
                HTTPStatus.INTERNAL_SERVER_ERROR, "failed to start service", str(exc)
            )
        return _message("service started")

    @bp.post("/stop")
    def stop_service() -> Any:
        try:
            req = bind_request(ServiceIDRequest, request.get_data())
        except BindError as exc:
            return _bind_error(exc)
        try:
            service_manager.stop_service(req.service_id)
        except ServiceError as exc:
            return _error(
                HTTPStatus.INTERNAL_SERVER_ERROR, "Failed to stop service", str(exc)
            )
        return _message("service stopped")

    @bp.delete("/remove")
    def remove_service() -> Any:
        try:
            req = bind_request(ServiceIDRequest, request.get_data())
        except BindError as exc:
            return _bind_error(exc)
        try:
            service_manager.remove_service(req.service_id)
        except ServiceError as exc:
            return _error(
                HTTPStatus.INTERNAL_SERVER_ERROR, "failed to remove service", str(exc)
            )
        return _message("remove service successful")

    @bp.post("/metrics")
    def get_service_metrics() -> Any:
        try:
            req = bind_request(ServiceIDRequest, request.get_data())
        except BindError as exc:
            return _bind_error(exc)
        try:
            service = service_manager.get_service(req.service_id)
        except ServiceError as exc:
            return _error(
                HTTPStatus.INTERNAL_SERVER_ERROR, "error fetching service", str(exc)
            )
        usage = service.resources_usage()
        metrics = ServiceMetrics(
            uptime=service.uptime(),
            cpu_percent=usage.cpu_percent,
            ram_usage=usage.ram_usage,
        )
        return jsonify(metrics.to_dict()), HTTPStatus.OK

    @bp.post("/network")
    def get_network_info() -> Any:
        try:
            req = bind_request(ServiceIDRequest, request.get_data())
        except BindError as exc:
            return _bind_error(exc)
        try:
            service = service_manager.get_service(req.service_id)
        except ServiceError as exc:
            return _error(
                HTTPStatus.INTERNAL_SERVER_ERROR, "error fetching service", str(exc)
            )
        return jsonify([info.to_dict() for info in service.network_info()]), HTTPStatus.OK

    return bp