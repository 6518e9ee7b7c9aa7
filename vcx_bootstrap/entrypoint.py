from __future__ import annotations
import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict

import yaml

from vcx_bootstrap.core.config import load_settings
from vcx_bootstrap.core.errors import BootstrapError
from vcx_bootstrap.core.logging_config import configure_logging


def _read_provision_config(path: Path) -> Dict[str, Any]:
    # yaml.safe_load accepts JSON documents as well
    data = yaml.safe_load(path.read_text())
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping, got {type(data).__name__}")
    return data


def _write_agent_config(agent_config: Dict[str, Any], output: str | None) -> None:
    text = json.dumps(agent_config, indent=2, sort_keys=True)
    if output:
        Path(output).write_text(text + "\n")
        print(f"[entrypoint] agent config written to {output}", flush=True)
    else:
        print(text, flush=True)


def _cmd_provision(args, settings) -> int:
    from vcx_bootstrap.bootstrap import BootstrapOrchestrator

    try:
        provision_config = _read_provision_config(Path(args.config))
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"[entrypoint] cannot read provisioning config: {exc}", file=sys.stderr, flush=True)
        return 2

    orchestrator = BootstrapOrchestrator(settings=settings)
    agent_config = orchestrator.run(provision_config, args.log_level, args.endpoint)
    _write_agent_config(agent_config, args.output)
    if args.init_runtime:
        orchestrator.init_runtime(agent_config)
        print("[entrypoint] runtime initialized", flush=True)
    return 0


def _cmd_wait(args, settings) -> int:
    from vcx_bootstrap.agency.readiness import ProbeContext, await_ready
    from vcx_bootstrap.utils.url_helpers import normalize_agency_endpoint

    endpoint = normalize_agency_endpoint(args.endpoint or settings.agency_endpoint, docker=settings.docker_mode)
    context = ProbeContext(timeout=args.timeout) if args.timeout is not None else None
    state = await_ready(
        endpoint,
        interval=settings.readiness_interval,
        request_timeout=settings.readiness_request_timeout,
        context=context,
    )
    print(f"[entrypoint] agency {endpoint} ready after {state.attempt_count} attempt(s)", flush=True)
    return 0


def _cmd_resolve(args, settings) -> int:
    from vcx_bootstrap.native.platform import resolve_library_path

    print(resolve_library_path(args.name, platform=args.platform, library_dir=settings.library_dir), flush=True)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vcx-bootstrap", description="Bootstrap the native vcx runtime and provision an agent")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("provision", help="Initialize plugins and logger, wait for the agency, provision an agent")
    p.add_argument("--config", required=True, help="Provisioning payload (JSON or YAML)")
    p.add_argument("--endpoint", required=False, help="Agency endpoint (default from VCX_AGENCY_ENDPOINT)")
    p.add_argument("--log-level", required=False, help="Native logger pattern (default from VCX_NATIVE_LOG_LEVEL)")
    p.add_argument("--output", required=False, help="Write the agent config here instead of stdout")
    p.add_argument("--init-runtime", action="store_true", help="Initialize the runtime with the provisioned config")
    p.set_defaults(handler=_cmd_provision)

    w = sub.add_parser("wait", help="Block until the agency answers its health check")
    w.add_argument("--endpoint", required=False)
    w.add_argument("--timeout", required=False, type=float, help="Give up after this many seconds (default: never)")
    w.set_defaults(handler=_cmd_wait)

    r = sub.add_parser("resolve", help="Print the platform path of a native module")
    r.add_argument("name")
    r.add_argument("--platform", required=False, help="OS identifier (default: running OS)")
    r.set_defaults(handler=_cmd_resolve)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings()
    configure_logging(settings.log_level)
    for line in settings.diagnostics:
        print(f"[entrypoint][config] {line}", file=sys.stderr, flush=True)
    try:
        return args.handler(args, settings)
    except BootstrapError as exc:
        print(f"[entrypoint] bootstrap failed: {exc.describe()}", file=sys.stderr, flush=True)
        return 1


if __name__ == '__main__':  # pragma: no cover
    sys.exit(main())
