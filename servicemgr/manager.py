"""Registry of services with persistence and log capture."""

from __future__ import annotations

import json
import logging
import os
import shutil
import threading
from pathlib import Path
from typing import Optional, Sequence

from .procutil import open_append
from .service import Service, create_service
from .types import (
    ServiceError,
    ServiceNotFoundError,
    ServiceRecord,
    ServiceStatus,
)

log = logging.getLogger(__name__)


class ServiceManager:
    """Keeps the registered services, their definitions file and their logs."""

    def __init__(self, logs_dir: str | os.PathLike[str], services_data_path: str | os.PathLike[str]) -> None:
        self.logs_dir = Path(logs_dir)
        self.services_data_path = Path(services_data_path)
        self._services: dict[str, Service] = {}
        self._lock = threading.Lock()

    def get_service(self, service_id: str) -> Service:
        with self._lock:
            try:
                return self._services[service_id]
            except KeyError:
                raise ServiceNotFoundError("service not found") from None

    def get_service_status(self, service_id: str) -> ServiceStatus:
        return self.get_service(service_id).status()

    def service_exists(self, service_id: str) -> bool:
        with self._lock:
            return service_id in self._services

    def get_all_services(self) -> list[Service]:
        with self._lock:
            return list(self._services.values())

    def register_service(
        self,
        service_name: str,
        command_name: str,
        command_args: Optional[Sequence[str]],
        execute_directory: str,
    ) -> Service:
        """Add a new service under a fresh ID and persist the registry."""
        with self._lock:
            try:
                service = create_service(
                    "",
                    service_name,
                    command_name,
                    command_args,
                    execute_directory,
                    self._stdout_handler,
                    self._stderr_handler,
                )
            except ServiceError as exc:
                raise ServiceError(f"register service: {exc}") from exc
            self._services[service.id] = service
            self._update_services_file()
            return service

    def load_services(self) -> None:
        """Read service definitions from the data file."""
        try:
            with open(self.services_data_path, encoding="utf-8") as fh:
                text = fh.read()
        except OSError as exc:
            raise ServiceError(f"error opening file: {exc}") from exc

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ServiceError(f"error decoding json: {exc}") from exc
        if payload is None:
            payload = []
        if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
            raise ServiceError("error decoding json: expected a list of objects")

        for item in payload:
            record = ServiceRecord.from_dict(item)
            try:
                self._load_service(record)
            except ServiceError as exc:
                raise ServiceError(f"error loading service: {exc}") from exc

    def remove_service(self, service_id: str) -> None:
        """Forget a stopped service and delete its logs."""
        with self._lock:
            service = self._services.get(service_id)
            if service is None:
                raise ServiceNotFoundError("service not found")
            if service.status() is not ServiceStatus.STOPPED:
                raise ServiceError(
                    f"service '{service.name}' (ID: '{service.id}') is running, cannot remove"
                )
            del self._services[service_id]

            try:
                shutil.rmtree(self.logs_dir / service_id)
            except FileNotFoundError:
                pass
            except OSError as exc:
                raise ServiceError(f"remove service log folder: {exc}") from exc

            self._update_services_file()

    def start_service(self, service_id: str) -> None:
        service = self._find(service_id)
        try:
            service.start()
        except ServiceError as exc:
            raise ServiceError(
                f"error starting service '{service.name}' (ID: '{service.id}'). error: {exc}"
            ) from exc

    def stop_service(self, service_id: str) -> None:
        service = self._find(service_id)
        try:
            service.stop()
        except ServiceError as exc:
            raise ServiceError(
                f"failed to stop service '{service.name}' (ID: '{service.id}'). Error: {exc}"
            ) from exc

    def stop_all_services(self) -> None:
        """Stop every service concurrently and wait for all of them."""

        def stop_quietly(service_id: str) -> None:
            try:
                self.stop_service(service_id)
            except ServiceError:
                pass

        with self._lock:
            service_ids = list(self._services)
        workers = [threading.Thread(target=stop_quietly, args=(sid,)) for sid in service_ids]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

    def _find(self, service_id: str) -> Service:
        with self._lock:
            service = self._services.get(service_id)
        if service is None:
            raise ServiceNotFoundError(f"service with ID '{service_id}' not found")
        return service

    def _load_service(self, record: ServiceRecord) -> None:
        with self._lock:
            if record.id in self._services:
                raise ServiceError("service id is already existed")
            try:
                service = create_service(
                    record.id,
                    record.name,
                    record.command.name,
                    record.command.arguments,
                    record.execute_directory,
                    self._stdout_handler,
                    self._stderr_handler,
                )
            except ServiceError as exc:
                raise ServiceError(f"load service: {exc}") from exc
            self._services[service.id] = service

    def _update_services_file(self) -> None:
        records = [
            ServiceRecord(s.id, s.name, s.command, s.execute_directory).to_dict()
            for s in self._services.values()
        ]
        try:
            with open(self.services_data_path, "w", encoding="utf-8") as fh:
                json.dump(records or None, fh, indent=2, ensure_ascii=False)
                fh.write("\n")
        except OSError as exc:
            raise ServiceError(f"error creating file: {exc}") from exc

    def _write_log(self, service: Service, line: str, stream_name: str) -> None:
        path = self.logs_dir / service.id / stream_name
        try:
            with open_append(path) as fh:
                fh.write(line.strip() + "\n")
        except OSError as exc:
            log.error("failed to write to file: %s", exc)

    def _stdout_handler(self, service: Service, line: str) -> None:
        self._write_log(service, line, "stdout")

    def _stderr_handler(self, service: Service, line: str) -> None:
        self._write_log(service, line, "stderr")