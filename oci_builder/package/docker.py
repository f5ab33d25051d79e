"""Distribution of a built OCI layout: Docker daemon, Podman, registry.

Docker is reached through its Engine API (``/images/load`` then
``/images/{name}/tag``) at the endpoint of the active Docker context.
Podman and registry pushes go through the ``podman`` and ``skopeo`` CLIs.
"""

from __future__ import annotations

import json
import logging
import os
import tarfile
import tempfile
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

import httpx

from oci_builder.errors import ExternalToolError
from oci_builder.process import run_tool
from oci_builder.reference import split_reference

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT = "default"
_CHUNK = 1024 * 1024


@dataclass(frozen=True)
class DockerEndpoint:
    context: str
    host: str
    # False when the Docker CLI config or contexts could not be read
    discovered: bool = True


# ---------------------------------------------------------------------------
# Context discovery
# ---------------------------------------------------------------------------


def _read_json_object(path: Path) -> dict:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object, got {type(data).__name__}")
    return data


def current_context(config_dir: Path) -> str:
    """Name of the active context from ``config.json`` ('' when unset)."""
    data = _read_json_object(config_dir / "config.json")
    context = data.get("currentContext") or ""
    if not isinstance(context, str):
        raise ValueError(f"currentContext must be a string, got {type(context).__name__}")
    return context


def context_endpoints(config_dir: Path) -> dict[str, str]:
    """Map context name to Docker host from ``contexts/meta/*/meta.json``."""
    meta_root = config_dir / "contexts" / "meta"
    if not meta_root.is_dir():
        raise FileNotFoundError(meta_root)
    endpoints: dict[str, str] = {}
    for meta in sorted(meta_root.glob("*/meta.json")):
        data = _read_json_object(meta)
        docker_meta = data.get("Endpoints") or {}
        if isinstance(docker_meta, dict):
            docker_meta = docker_meta.get("docker") or {}
        host = docker_meta.get("Host") if isinstance(docker_meta, dict) else None
        if data.get("Name") and isinstance(host, str) and host:
            endpoints[data["Name"]] = host
    return endpoints


def resolve_docker_endpoint(config_dir: Path, default_host: str) -> DockerEndpoint:
    """Endpoint of the active Docker context.

    Falls back to *default_host* when the context cannot be discovered, so a
    missing CLI config never blocks a running daemon.
    """
    discovered = True
    try:
        context = current_context(config_dir)
    except (OSError, ValueError) as e:
        logger.info("cannot read docker config in %s: %s", config_dir, e)
        context, discovered = "", False
    try:
        endpoints = context_endpoints(config_dir)
    except (OSError, ValueError) as e:
        logger.info("cannot read docker contexts in %s: %s", config_dir, e)
        endpoints, discovered = {}, False

    context = context or DEFAULT_CONTEXT
    host = endpoints.get(context, default_host)
    return DockerEndpoint(context=context, host=host, discovered=discovered)


# ---------------------------------------------------------------------------
# Docker Engine API
# ---------------------------------------------------------------------------


def _client(host: str, timeout: float) -> httpx.Client:
    url = urlparse(host)
    if url.scheme == "unix":
        transport = httpx.HTTPTransport(uds=url.path)
        return httpx.Client(transport=transport, base_url="http://docker", timeout=timeout)
    if url.scheme in {"tcp", "http"}:
        return httpx.Client(base_url=f"http://{url.netloc}", timeout=timeout)
    if url.scheme == "https":
        return httpx.Client(base_url=f"https://{url.netloc}", timeout=timeout)
    raise ExternalToolError(f"unsupported docker host {host!r}", tool="docker")


def _tar_layout(layout: Path, dest: Path) -> None:
    # Nix leaves symlinks into the store; the daemon needs the real files.
    with tarfile.open(dest, "w", dereference=True) as tar:
        for child in sorted(layout.iterdir()):
            tar.add(child, arcname=child.name)


def _read_chunks(path: Path) -> Iterator[bytes]:
    with open(path, "rb") as f:
        while chunk := f.read(_CHUNK):
            yield chunk


def parse_load_stream(body: str) -> list[str]:
    """Image references or IDs reported by ``/images/load``.

    Raises ExternalToolError when the stream carries an error message.
    """
    loaded: list[str] = []
    for line in body.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            msg = json.loads(line)
        except json.JSONDecodeError:
            continue
        if msg.get("error"):
            raise ExternalToolError(f"docker load failed: {msg['error']}", tool="docker")
        text = (msg.get("stream") or "").strip()
        for prefix in ("Loaded image ID:", "Loaded image:"):
            if text.startswith(prefix):
                loaded.append(text[len(prefix) :].strip())
                break
    return loaded


def load_docker(host: str, layout: Path, image: str, *, timeout: float = 300.0) -> str:
    """Load the OCI *layout* into the daemon at *host* and tag it *image*."""
    if not layout.is_dir():
        raise ExternalToolError(f"build result {layout} is not a directory", tool="docker")

    fd, tmp = tempfile.mkstemp(prefix="ocib-", suffix=".tar")
    os.close(fd)
    tarball = Path(tmp)
    try:
        _tar_layout(layout, tarball)
        with _client(host, timeout) as client:
            resp = client.post(
                "/images/load",
                params={"quiet": "1"},
                content=_read_chunks(tarball),
                headers={"Content-Type": "application/x-tar"},
            )
            if resp.status_code != 200:
                raise ExternalToolError(
                    f"docker load failed ({resp.status_code}): {resp.text.strip()}",
                    tool="docker",
                )
            loaded = parse_load_stream(resp.text)
            if not loaded:
                raise ExternalToolError("docker load reported no image", tool="docker")

            source = loaded[0]
            if source != image:
                repo, tag = split_reference(image)
                tag_resp = client.post(
                    f"/images/{source}/tag", params={"repo": repo, "tag": tag or "latest"}
                )
                if tag_resp.status_code not in (200, 201):
                    raise ExternalToolError(
                        f"docker tag {source} {image} failed ({tag_resp.status_code}): "
                        f"{tag_resp.text.strip()}",
                        tool="docker",
                    )
    except httpx.HTTPError as e:
        raise ExternalToolError(f"cannot reach docker daemon at {host}: {e}", tool="docker") from e
    finally:
        tarball.unlink(missing_ok=True)

    logger.info("loaded %s into docker at %s", image, host)
    return image


# ---------------------------------------------------------------------------
# Podman and registry
# ---------------------------------------------------------------------------


def load_podman(layout: Path, image: str, *, podman_bin: str = "podman") -> str:
    pulled = run_tool([podman_bin, "pull", "--quiet", f"oci:{layout}"], capture=True, tool="podman")
    image_id = pulled.stdout.strip().splitlines()[-1] if pulled.stdout.strip() else ""
    if not image_id:
        raise ExternalToolError("podman pull reported no image id", tool="podman")
    run_tool([podman_bin, "tag", image_id, image], tool="podman")
    return image


def push(layout: Path, image: str, *, skopeo_bin: str = "skopeo") -> str:
    """Copy the layout to the registry named by *image*."""
    run_tool([skopeo_bin, "copy", f"oci:{layout}", f"docker://{image}"], tool="skopeo")
    return image
