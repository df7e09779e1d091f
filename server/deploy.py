"""
Load and cross-check the Kubernetes manifests and skaffold.yaml.

Checks:
- Every Service selector matches a Deployment's pod labels
- Every Service targetPort is a containerPort of a matched container
- Every Ingress backend names an existing Service port
- Every Deployment volume claim names an existing PersistentVolumeClaim
- Every secretKeyRef points at the database secret
- The server Deployment sets every variable the API reads
- Every manifest listed in skaffold.yaml exists, every built image is deployed

Usage:
    check-manifests
    check-manifests --k8s-dir k8s --skaffold skaffold.yaml
"""
from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

import yaml

SECRET_NAME = "db-secrets"
SECRET_KEYS = {"db-password", "db-root-password"}
SERVER_DEPLOYMENT = "server-deployment"
SERVER_ENV_VARS = ("MYSQLUSER", "MYSQLPASSWORD", "MYSQLHOST", "MYSQLPORT", "MYSQLDATABASE", "PORT")


class ManifestError(ValueError):
    """A manifest file could not be parsed into named Kubernetes objects."""


@dataclass(frozen=True)
class Manifest:
    kind: str
    name: str
    body: dict[str, Any]
    source: Path


def _parse_document(doc: Any, source: Path) -> Manifest:
    if not isinstance(doc, dict):
        raise ManifestError(f"{source}: expected a mapping, got {type(doc).__name__}")
    kind = doc.get("kind")
    name = (doc.get("metadata") or {}).get("name")
    if not kind or not name:
        raise ManifestError(f"{source}: document needs kind and metadata.name")
    return Manifest(kind=kind, name=name, body=doc, source=source)


def load_manifests(directory: str | Path) -> list[Manifest]:
    """Parse every document of every *.yaml file in directory, in file name order."""
    manifests = []
    for path in sorted(Path(directory).glob("*.yaml")):
        try:
            with open(path) as f:
                docs = list(yaml.safe_load_all(f))
        except yaml.YAMLError as e:
            raise ManifestError(f"{path}: {e}") from e
        manifests.extend(_parse_document(doc, path) for doc in docs if doc is not None)
    return manifests


def _by_kind(manifests: list[Manifest], kind: str) -> list[Manifest]:
    return [m for m in manifests if m.kind == kind]


def _spec(manifest: Manifest) -> dict[str, Any]:
    return manifest.body.get("spec") or {}


def _template(deployment: Manifest) -> dict[str, Any]:
    return _spec(deployment).get("template") or {}


def _pod_spec(deployment: Manifest) -> dict[str, Any]:
    return _template(deployment).get("spec") or {}


def _pod_labels(deployment: Manifest) -> dict[str, str]:
    return (_template(deployment).get("metadata") or {}).get("labels") or {}


def _containers(deployment: Manifest) -> list[dict[str, Any]]:
    return _pod_spec(deployment).get("containers", []) or []


def _container_ports(deployment: Manifest) -> set[int | str]:
    ports: set[int | str] = set()
    for c in _containers(deployment):
        for p in c.get("ports", []) or []:
            ports.add(p.get("containerPort"))
            if p.get("name"):
                ports.add(p["name"])
    return ports


def _secret_refs(deployment: Manifest) -> Iterator[dict[str, Any]]:
    for c in _containers(deployment):
        for e in c.get("env", []) or []:
            ref = (e.get("valueFrom") or {}).get("secretKeyRef")
            if ref:
                yield ref


def _ingress_backends(ingress: Manifest) -> Iterator[tuple[str, Any]]:
    for rule in _spec(ingress).get("rules") or []:
        for path in (rule.get("http") or {}).get("paths", []) or []:
            service = (path.get("backend") or {}).get("service") or {}
            port = service.get("port") or {}
            yield service.get("name"), port.get("number", port.get("name"))


def check_topology(manifests: list[Manifest]) -> list[str]:
    """Return a list of problems. Empty list means the manifests fit together."""
    problems = []
    deployments = _by_kind(manifests, "Deployment")
    services = {m.name: m for m in _by_kind(manifests, "Service")}
    claims = {m.name for m in _by_kind(manifests, "PersistentVolumeClaim")}

    for svc in services.values():
        spec = _spec(svc)
        selector = spec.get("selector") or {}
        matched = [d for d in deployments if selector and selector.items() <= _pod_labels(d).items()]
        if not matched:
            problems.append(f"[{svc.name}] selector {selector} matches no Deployment")
            continue
        ports = set().union(*(_container_ports(d) for d in matched))
        for p in spec.get("ports", []) or []:
            target = p.get("targetPort", p.get("port"))
            if target not in ports:
                problems.append(f"[{svc.name}] targetPort {target} is not a containerPort of {matched[0].name}")

    for ing in _by_kind(manifests, "Ingress"):
        for name, port in _ingress_backends(ing):
            svc = services.get(name)
            if svc is None:
                problems.append(f"[{ing.name}] backend service {name} does not exist")
                continue
            declared = _spec(svc).get("ports") or []
            svc_ports = {p.get("port") for p in declared} | {p.get("name") for p in declared if p.get("name")}
            if port not in svc_ports:
                problems.append(f"[{ing.name}] service {name} has no port {port}")

    for dep in deployments:
        for vol in _pod_spec(dep).get("volumes", []) or []:
            claim = (vol.get("persistentVolumeClaim") or {}).get("claimName")
            if claim and claim not in claims:
                problems.append(f"[{dep.name}] volume {vol.get('name')} claims missing PVC {claim}")
        for ref in _secret_refs(dep):
            if ref.get("name") != SECRET_NAME or ref.get("key") not in SECRET_KEYS:
                problems.append(f"[{dep.name}] secretKeyRef {ref.get('name')}/{ref.get('key')} is not a {SECRET_NAME} key")

    server = next((d for d in deployments if d.name == SERVER_DEPLOYMENT), None)
    if server is None:
        problems.append(f"[{SERVER_DEPLOYMENT}] Deployment missing")
    else:
        env_names = {e.get("name") for c in _containers(server) for e in c.get("env", []) or []}
        for var in SERVER_ENV_VARS:
            if var not in env_names:
                problems.append(f"[{SERVER_DEPLOYMENT}] env {var} not set")

    return problems


def load_skaffold(path: str | Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ManifestError(f"{path}: {e}") from e
    if not isinstance(config, dict):
        raise ManifestError(f"{path}: expected a mapping")
    return config


def check_skaffold(config: dict[str, Any], base_dir: str | Path, manifests: list[Manifest] | None = None) -> list[str]:
    """Every listed manifest exists; every built image is used by a Deployment when manifests are given."""
    problems = []
    base = Path(base_dir)
    listed = ((config.get("deploy") or {}).get("kubectl") or {}).get("manifests", []) or []
    if not listed:
        problems.append("[skaffold] deploy.kubectl.manifests is empty")
    for entry in listed:
        if not (base / entry).exists():
            problems.append(f"[skaffold] manifest {entry} does not exist")

    if manifests is not None:
        deployed = {c.get("image") for d in _by_kind(manifests, "Deployment") for c in _containers(d)}
        for artifact in (config.get("build") or {}).get("artifacts", []) or []:
            if artifact.get("image") not in deployed:
                problems.append(f"[skaffold] image {artifact.get('image')} is built but not deployed")
    return problems


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Cross-check the Kubernetes manifests and skaffold.yaml.")
    parser.add_argument("--k8s-dir", default="k8s", help="Directory holding the manifests")
    parser.add_argument("--skaffold", default="skaffold.yaml", help="Path to skaffold.yaml")
    args = parser.parse_args(argv)

    try:
        manifests = load_manifests(args.k8s_dir)
        problems = check_topology(manifests)
        skaffold_path = Path(args.skaffold)
        if skaffold_path.exists():
            problems += check_skaffold(load_skaffold(skaffold_path), skaffold_path.parent, manifests)
        else:
            problems.append(f"[skaffold] {skaffold_path} not found")
    except ManifestError as e:
        print(f"ERROR: {e}")
        return 1

    for p in problems:
        print(f"  - {p}")
    if problems:
        print(f"\n{len(problems)} problem(s) in {len(manifests)} manifest(s)")
        return 1
    print(f"OK: {len(manifests)} manifest(s) consistent")
    return 0


if __name__ == "__main__":
    sys.exit(main())
