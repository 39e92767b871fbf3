# servicemgr

A small HTTP server that manages long-running background commands. You
register a command once, then start, stop and remove it through a JSON API,
and you can read its resource usage, its listening ports and its live
stdout/stderr output.

## Installing

```
pip install .
```

## Running the server

```
servicemgr
```

The command takes no options besides `--help`. It reads its settings from the
environment, after loading a `.env` file from the working directory if there
is one:

| Variable        | Default                   | Meaning                                   |
|-----------------|---------------------------|-------------------------------------------|
| `HOST`          | `0.0.0.0`                 | Address to listen on                      |
| `PORT`          | `8080`                    | Port to listen on                         |
| `LOGS_DIR`      | `data/logs`               | Where each service's output is kept       |
| `SERVICES_DATA` | `data/services_data.json` | File holding the registered services      |

Registered services are saved to `SERVICES_DATA` (a JSON list of objects with
`ID`, `Name`, `Cmd` and `ExecuteDirectory`) and loaded again at the next
start; if the file cannot be read, the server starts with no services and
logs a warning. The directory holding `SERVICES_DATA` must already exist,
otherwise registration fails when the file is written. On Ctrl+C the server
shuts down and stops every running service.

Each service's output is appended, one whitespace-trimmed line at a time, to
`LOGS_DIR/<service id>/stdout` and `LOGS_DIR/<service id>/stderr`; these
directories are created as needed and deleted when the service is removed.

## HTTP API

| Method   | Path                            | Body                                       |
|----------|---------------------------------|--------------------------------------------|
| `GET`    | `/health`                       |                                            |
| `POST`   | `/manager/register`             | `service_name`, `command_name`, `command_args`, `execute_directory` |
| `GET`    | `/manager/services`             |                                            |
| `POST`   | `/manager/start`                | `service_id`                               |
| `POST`   | `/manager/stop`                 | `service_id`                               |
| `DELETE` | `/manager/remove`               | `service_id`                               |
| `POST`   | `/manager/metrics`              | `service_id`                               |
| `POST`   | `/manager/network`              | `service_id`                               |
| `GET`    | `/stream/stdout/<service_id>`   |                                            |
| `GET`    | `/stream/stderr/<service_id>`   |                                            |

Registering a service:

```
curl -X POST localhost:8080/manager/register \
     -H 'Content-Type: application/json' \
     -d '{"service_name": "web", "command_name": "python3",
          "command_args": ["-m", "http.server", "9000"],
          "execute_directory": "/tmp"}'
```

`service_name` and `command_name` are required; a request without them gets
`422`. A body that is not valid JSON, or has fields of the wrong type, gets
`400`. Errors come back as `{"error_message": ..., "details": ...}`, with
`details` left out when empty. Failures to start, stop, remove or find a
service answer `500`.

`/manager/services` lists every service as `id`, `name`, `cmd`
(`{"name", "args"}`), `execute_directory` and `is_running`.

Starting a service that is already running, or stopping one that is not, is
an error. A running service cannot be removed; stop it first. Stopping kills
the process (`SIGKILL` on POSIX, `taskkill /F /T` on Windows) and waits for it
to exit.

Requests carrying an `Origin` header are answered with
`Access-Control-Allow-Origin: *`, and CORS preflight requests are accepted.

### Metrics and network

`/manager/metrics` returns `uptime` in whole seconds (0 when the service is
not running), `cpu_percent` averaged over the life of the process, and
`ram_usage` (resident memory) in MiB.

`/manager/network` returns a list of `{"IP", "Port"}` for every socket the
service and its child processes listen on; the IPv6 wildcard `::` is reported
as `0.0.0.0`. When nothing is found the list holds one entry with an empty IP
and port 0.

### Log streams

The stream endpoints use Server-Sent Events. The first event is
`{"type": "event_initial", "data": [...]}` with up to 10000 lines from the
start of the log (`data` is `null` if the log does not exist yet); then,
whenever the log file is written, its last line arrives as
`{"type": "event_append", "data": "..."}`. Problems, such as an unknown
service ID, are reported as `event_error` with an error object as data, and
end the stream.

## Using it from Python

```python
from servicemgr.manager import ServiceManager

manager = ServiceManager("data/logs", "data/services_data.json")
service = manager.register_service("sleeper", "sleep", ["60"], "")
manager.start_service(service.id)
print(manager.get_service_status(service.id))
manager.stop_service(service.id)
```

Operations that fail raise `servicemgr.types.ServiceError`, or its subclass
`ServiceNotFoundError` for an unknown ID. `servicemgr.server.create_app`
builds the Flask application for a given manager, and
`servicemgr.streaming.stream_log` yields the stream messages of one log.

## What it does not do

- `/docs` only redirects to `/docs/index.html`; no API documentation page is
  served there.
- There is no authentication and no TLS; anyone who can reach the port can
  start and stop commands.
- On POSIX, stopping a service kills only its main process, not processes it
  started itself.