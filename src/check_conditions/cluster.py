"""Kubernetes cluster access.

This module provides the Cluster class, which discovers the resource types
a cluster serves and lists the objects of one type as plain dictionaries.
Every request goes through the generic REST path, so custom resources are
handled the same way as built-in ones.
"""

import os
import time
from typing import Any

import click
import questionary
from icecream import ic
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError, MaxRetryError

from check_conditions import console
from check_conditions.exceptions import ClusterConnectionError, ResourceListError
from check_conditions.models import ResourceTypeDescriptor
from check_conditions.styles import POINTER, PROMPT_STYLE, QMARK

IN_CLUSTER_CONTEXT = "in-cluster"

# Objects fetched per list request
_PAGE_SIZE = 500


def _describe(e: Exception) -> str:
    if isinstance(e, ApiException):
        return f"{e.status} {e.reason}"
    if isinstance(e, MaxRetryError):
        return str(e.reason)
    return str(e)


def _list_error(descriptor: ResourceTypeDescriptor, detail: str) -> str:
    return (
        f"Error listing {descriptor.name}: {detail}. group {descriptor.group!r} "
        f"version {descriptor.version!r} resource {descriptor.name!r}"
    )


class Cluster:
    """Read-only access to one Kubernetes cluster.

    Attributes:
        context: The kube context in use, or 'in-cluster'.
        api_client: The configured kubernetes ApiClient.

    """

    def __init__(self, *, context: str | None = None, select_context: bool = False, pool_size: int = 10) -> None:
        """Load credentials for the chosen context.

        Args:
            context: Context name. Defaults to the current context.
            select_context: If True, prompt the user to select a context.
            pool_size: HTTP connection pool size, at least the worker count.

        Raises:
            ClusterConnectionError: If no usable kubeconfig or in-cluster
                configuration is found.

        """
        configuration = client.Configuration()
        self.context: str = self._set_context(context=context, select_context=select_context)
        try:
            if self.context == IN_CLUSTER_CONTEXT:
                config.load_incluster_config(client_configuration=configuration)
            else:
                config.load_kube_config(context=self.context, client_configuration=configuration)
        except ConfigException as e:
            raise ClusterConnectionError(f"Invalid or missing kubeconfig: {e}") from e
        configuration.connection_pool_maxsize = max(pool_size, configuration.connection_pool_maxsize or 0)
        self.api_client: client.ApiClient = client.ApiClient(configuration)

    @staticmethod
    def _set_context(*, context: str | None, select_context: bool) -> str:
        """Determine the kube context to use.

        Returns:
            The selected, given or current context name.

        Raises:
            ClusterConnectionError: If kubeconfig is invalid or missing.
            click.Abort: If user cancels context selection.

        """
        try:
            contexts, current_context = config.list_kube_config_contexts()
        except ConfigException as e:
            if os.environ.get("KUBERNETES_SERVICE_HOST"):
                return IN_CLUSTER_CONTEXT
            raise ClusterConnectionError(f"Invalid or missing kubeconfig: {e}") from e
        if select_context:
            context_names: list[str] = [ctx["name"] for ctx in contexts]
            selected: str | None = questionary.select(
                "Select context to check",
                choices=context_names,
                style=PROMPT_STYLE,
                pointer=POINTER,
                qmark=QMARK,
            ).ask()
            if selected is None:
                console.warning("Context selection cancelled.")
                raise click.Abort()
            return selected
        if context:
            return context
        return str(current_context["name"])

    def _get(self, path: str, query: list[tuple[str, Any]] | None = None, timeout: float | None = None) -> Any:
        return self.api_client.call_api(
            path,
            "GET",
            query_params=query or [],
            header_params={"Accept": "application/json"},
            response_type="object",
            auth_settings=["BearerToken"],
            _return_http_data_only=True,
            _request_timeout=timeout,
        )

    def enumerate_resource_types(self) -> list[ResourceTypeDescriptor]:
        """List the resource types served by the cluster.

        Only the preferred version of each API group is returned. Groups
        whose discovery fails (typically an orphaned API service) are
        skipped with a warning.

        Returns:
            Unfiltered descriptors, subresources included.

        Raises:
            ClusterConnectionError: If the API server cannot be reached.

        """
        try:
            core = self._get("/api/v1")
            groups = self._get("/apis")
        except (ApiException, HTTPError) as e:
            raise ClusterConnectionError(f"Failed to connect to the Kubernetes cluster: {_describe(e)}") from e

        descriptors = [
            ResourceTypeDescriptor("", "v1", item["name"], bool(item.get("namespaced")))
            for item in core.get("resources") or []
        ]
        for group in groups.get("groups") or []:
            preferred = group.get("preferredVersion") or {}
            group_version = preferred.get("groupVersion")
            if not group_version:
                continue
            try:
                resource_list = self._get(f"/apis/{group_version}")
            except (ApiException, HTTPError) as e:
                console.diagnostic(
                    f"WARNING: The Kubernetes server has an orphaned API service. "
                    f"Discovery of {group_version} failed: {_describe(e)}"
                )
                console.diagnostic("WARNING: To fix this, kubectl delete apiservice <service-name>")
                continue
            group_name, _, version = group_version.rpartition("/")
            descriptors.extend(
                ResourceTypeDescriptor(group_name, version, item["name"], bool(item.get("namespaced")))
                for item in resource_list.get("resources") or []
            )
        ic(len(descriptors))
        return descriptors

    @staticmethod
    def _list_path(descriptor: ResourceTypeDescriptor, namespace: str | None) -> str:
        prefix = "/api/v1" if not descriptor.group else f"/apis/{descriptor.group}/{descriptor.version}"
        if namespace and descriptor.namespaced:
            return f"{prefix}/namespaces/{namespace}/{descriptor.name}"
        return f"{prefix}/{descriptor.name}"

    def list_objects(
        self,
        descriptor: ResourceTypeDescriptor,
        namespace: str | None = None,
        timeout: float | None = None,
    ) -> list[dict[str, Any]]:
        """List all objects of one resource type.

        Args:
            descriptor: The resource type.
            namespace: Only list objects in this namespace.
            timeout: Timeout in seconds for the whole listing, all pages
                included. Each request gets what is left of it.

        Returns:
            The objects as plain dictionaries.

        Raises:
            ResourceListError: If a request fails (forbidden, not found,
                network problems) or the timeout runs out between pages.

        """
        path = self._list_path(descriptor, namespace)
        deadline = time.monotonic() + timeout if timeout else None
        items: list[dict[str, Any]] = []
        token = ""
        while True:
            remaining = None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise ResourceListError(_list_error(descriptor, f"timed out after {timeout:g}s"))
            query: list[tuple[str, Any]] = [("limit", _PAGE_SIZE)]
            if token:
                query.append(("continue", token))
            try:
                page = self._get(path, query, remaining)
            except (ApiException, HTTPError) as e:
                raise ResourceListError(_list_error(descriptor, _describe(e))) from e
            items.extend(page.get("items") or [])
            token = (page.get("metadata") or {}).get("continue") or ""
            if not token:
                return items

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"Cluster(context={self.context!r})"
