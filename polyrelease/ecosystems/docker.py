"""Container images (Dockerfile).

Images carry no version in the Dockerfile; the release version is applied
as image tags at publish time. Removing a published tag goes through a
different mechanism per registry:

- ghcr.io: GitHub Packages API via ``gh api``
- Docker Hub: Hub HTTP API
- gcr.io / *-docker.pkg.dev: ``gcloud``
- Amazon ECR: ``aws ecr batch-delete-image``
- anything else: the OCI distribution API (manifest lookup, then delete
  by digest)
"""

from __future__ import annotations

import json
import re
import subprocess
from pathlib import Path
from urllib.parse import quote

import requests

from ..config import DockerConfig
from ..errors import ConfigError
from ..shell import gh, run
from ..version_files import VersionParts, apply_version_template
from .base import SENTINEL_VERSION, EcosystemContext

MANIFEST = "Dockerfile"
DOCKER_HUB_REGISTRIES = ("docker.io", "index.docker.io", "registry-1.docker.io")
DOCKER_HUB_API = "https://hub.docker.com/v2"
ECR_PATTERN = re.compile(r"\.dkr\.ecr\.([^.]+)\.amazonaws\.com$")
MANIFEST_MEDIA_TYPES = ", ".join(
    [
        "application/vnd.docker.distribution.manifest.v2+json",
        "application/vnd.docker.distribution.manifest.list.v2+json",
        "application/vnd.oci.image.manifest.v1+json",
        "application/vnd.oci.image.index.v1+json",
    ]
)
HTTP_TIMEOUT = 30


def image_tags(config: DockerConfig, version: str, is_prerelease: bool) -> list[str]:
    """Expand the tag templates for a version, dropping duplicates.

    Example:
        tags ["latest", "{version}", "{major}.{minor}"] for 1.4.0
        → ["latest", "1.4.0", "1.4"]
    """
    templates = config.dev_tags if is_prerelease else config.tags
    parts = VersionParts.from_version(version)
    tags: list[str] = []
    for template in templates:
        tag = apply_version_template(template, parts)
        if tag not in tags:
            tags.append(tag)
    return tags


def image_ref(config: DockerConfig) -> str:
    return f"{config.registry}/{config.image}"


class DockerEcosystem:
    name = "docker"
    unpublish_unsupported_reason = ""

    def detect(self, path: Path) -> bool:
        return (path / MANIFEST).exists()

    def read_version(self, ctx: EcosystemContext) -> str:
        ctx.log("Docker images are versioned by tags; using 0.0.0")
        return SENTINEL_VERSION

    def write_version(self, ctx: EcosystemContext, version: str) -> None:
        ctx.log(f"Docker images are versioned by tags; {version} applies at publish")

    def get_version_files(self, ctx: EcosystemContext) -> list[str]:
        return [ctx.docker.dockerfile if ctx.docker else MANIFEST]

    def publish(self, ctx: EcosystemContext) -> None:
        """Build the image with buildx and push every templated tag."""
        config = self._require_config(ctx)
        if not ctx.version:
            raise ConfigError("Docker publish needs the release version")

        ref = image_ref(config)
        tags = image_tags(config, ctx.version, ctx.is_prerelease)
        args = ["docker", "buildx", "build", "-f", config.dockerfile]
        for key, value in config.build_args.items():
            args += ["--build-arg", f"{key}={value}"]
        if config.platforms:
            args += ["--platform", ",".join(config.platforms)]
        if config.target:
            args += ["--target", config.target]
        for tag in tags:
            args += ["-t", f"{ref}:{tag}"]
        if config.push:
            args.append("--push")
        args.append(config.context or ".")

        if ctx.dry_run:
            ctx.log(f"[dry-run] Would run {' '.join(args)}")
            return

        if config.username and config.password:
            run(
                "docker", "login", config.registry,
                "-u", config.username, "--password-stdin",
                input=config.password.encode(),
            )
        run(*args, cwd=ctx.path)
        ctx.log(f"Built {ref} with tags: {', '.join(tags)}")

    def unpublish(self, ctx: EcosystemContext, version: str) -> bool:
        """Delete the image tag for ``version`` from its registry.

        Returns False when the registry has no such tag or no usable
        credentials; transport and command failures propagate.
        """
        config = self._require_config(ctx)
        registry = config.registry
        if ctx.dry_run:
            ctx.log(f"[dry-run] Would delete {image_ref(config)}:{version}")
            return True

        if registry == "ghcr.io":
            deleted = self._delete_ghcr(ctx, config, version)
        elif registry in DOCKER_HUB_REGISTRIES:
            deleted = self._delete_docker_hub(ctx, config, version)
        elif registry.endswith("gcr.io") or registry.endswith("-docker.pkg.dev"):
            run(
                "gcloud", "container", "images", "delete",
                f"{image_ref(config)}:{version}", "--quiet", "--force-delete-tags",
            )
            deleted = True
        elif ECR_PATTERN.search(registry):
            deleted = self._delete_ecr(config, version)
        else:
            deleted = self._delete_oci(ctx, config, version)

        if deleted:
            ctx.log(f"Deleted {image_ref(config)}:{version}")
        return deleted

    def _require_config(self, ctx: EcosystemContext) -> DockerConfig:
        if ctx.docker is None:
            raise ConfigError(f"Docker package at {ctx.path} has no [docker] settings")
        return ctx.docker

    def _delete_ghcr(self, ctx: EcosystemContext, config: DockerConfig, version: str) -> bool:
        owner, _, package = config.image.partition("/")
        package = quote(package, safe="")
        # The owner may be a user or an organization; try both.
        for scope in ("users", "orgs"):
            endpoint = f"/{scope}/{owner}/packages/container/{package}/versions"
            try:
                output = gh(
                    "api", "--paginate", endpoint,
                    "--jq", ".[] | {id: .id, tags: .metadata.container.tags}",
                )
            except subprocess.CalledProcessError:
                continue
            for line in output.splitlines():
                entry = json.loads(line)
                if version in (entry.get("tags") or []):
                    gh("api", "-X", "DELETE", f"{endpoint}/{entry['id']}")
                    return True
            ctx.log(f"No ghcr.io version of {config.image} is tagged {version}")
            return False
        ctx.log(f"Could not list ghcr.io versions of {config.image}")
        return False

    def _delete_docker_hub(
        self, ctx: EcosystemContext, config: DockerConfig, version: str
    ) -> bool:
        if not (config.username and config.password):
            ctx.log("Docker Hub deletion needs username and password")
            return False
        login = requests.post(
            f"{DOCKER_HUB_API}/users/login/",
            json={"username": config.username, "password": config.password},
            timeout=HTTP_TIMEOUT,
        )
        login.raise_for_status()
        token = login.json()["token"]

        response = requests.delete(
            f"{DOCKER_HUB_API}/repositories/{config.image}/tags/{version}/",
            headers={"Authorization": f"JWT {token}"},
            timeout=HTTP_TIMEOUT,
        )
        if response.status_code == 404:
            ctx.log(f"Docker Hub has no tag {config.image}:{version}")
            return False
        response.raise_for_status()
        return True

    def _delete_ecr(self, config: DockerConfig, version: str) -> bool:
        args = [
            "aws", "ecr", "batch-delete-image",
            "--repository-name", config.image,
            "--image-ids", f"imageTag={version}",
        ]
        match = ECR_PATTERN.search(config.registry)
        if match:
            args += ["--region", match.group(1)]
        run(*args)
        return True

    def _delete_oci(self, ctx: EcosystemContext, config: DockerConfig, version: str) -> bool:
        base = f"https://{config.registry}/v2/{config.image}/manifests"
        auth = (config.username, config.password) if config.username and config.password else None

        manifest = requests.get(
            f"{base}/{version}",
            headers={"Accept": MANIFEST_MEDIA_TYPES},
            auth=auth,
            timeout=HTTP_TIMEOUT,
        )
        if manifest.status_code == 404:
            ctx.log(f"{config.registry} has no manifest for {config.image}:{version}")
            return False
        manifest.raise_for_status()
        digest = manifest.headers.get("Docker-Content-Digest")
        if not digest:
            ctx.log(f"{config.registry} did not report a digest for {config.image}:{version}")
            return False

        response = requests.delete(f"{base}/{digest}", auth=auth, timeout=HTTP_TIMEOUT)
        response.raise_for_status()
        return True
