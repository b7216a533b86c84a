"""
Kubernetes API client module for workspace namespace provisioning.

This module provides a thin client over the official Kubernetes API client with
the operations needed to provision per-user namespaces: namespace and OpenShift
project management, service accounts, RBAC objects, secrets, config maps, API
capability probing and label-based cleanup of workspace objects.

Every call is a plain request to the API server; results are returned as
manifest dictionaries and nothing is cached between calls.
"""

import json
import logging
import random
import time
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Dict, List, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError as Urllib3HTTPError
from urllib3.exceptions import TimeoutError as Urllib3TimeoutError

from .errors import InfrastructureError

PROJECT_GROUP = "project.openshift.io"
PROJECT_VERSION = "v1"
ROUTE_GROUP = "route.openshift.io"
ROUTE_VERSION = "v1"

PAGE_SIZE = 100


# Custom Exception Classes for different Kubernetes error types
class K8sBaseException(InfrastructureError):
    """Base exception for all Kubernetes client errors"""
    def __init__(self, message: str, status_code: Optional[int] = None,
                 operation: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.operation = operation
        self.context = context or {}
        self.timestamp = time.time()


class K8sAuthenticationError(K8sBaseException):
    """Authentication failed (401)"""
    pass


class K8sAuthorizationError(K8sBaseException):
    """Authorization failed (403)"""
    pass


class K8sNotFoundError(K8sBaseException):
    """Resource not found (404)"""
    pass


class K8sConflictError(K8sBaseException):
    """Resource already exists (409)"""
    pass


class K8sServerError(K8sBaseException):
    """Server error (500+)"""
    pass


class K8sNetworkError(K8sBaseException):
    """Network/connection error"""
    pass


class K8sTimeoutError(K8sBaseException):
    """Request timeout error"""
    pass


@dataclass
class K8sClientConfig:
    """Configuration for Kubernetes client"""
    api_server_url: Optional[str] = None
    verify_ssl: bool = True
    connection_timeout: int = 30
    read_timeout: int = 60

    # Retry configuration
    max_retries: int = 3
    base_retry_delay: float = 1.0  # Base delay for exponential backoff
    max_retry_delay: float = 60.0  # Maximum delay between retries
    retry_jitter: bool = True  # Add random jitter to prevent thundering herd

    enable_detailed_logging: bool = True


def _calculate_exponential_backoff(attempt: int, base_delay: float, max_delay: float,
                                   jitter: bool = True) -> float:
    """Calculate exponential backoff delay with optional jitter"""
    delay = min(base_delay * (2 ** attempt), max_delay)

    if jitter:
        delay += random.uniform(0, delay * 0.1)  # Add up to 10% jitter

    return delay


def with_retry(operation_name: str = None):
    """
    Decorator that converts API errors and retries transient failures.

    Client errors are converted to the K8s exception hierarchy. Network errors,
    timeouts, throttling and server errors are retried with exponential backoff;
    everything else is raised immediately.

    Args:
        operation_name: Name of the operation for logging
    """
    def decorator(func: Callable):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            retry_config = self.config
            op_name = operation_name or func.__name__
            last_exception = None

            for attempt in range(retry_config.max_retries + 1):
                try:
                    return func(self, *args, **kwargs)
                except ApiException as e:
                    last_exception = self._convert_api_exception(e, op_name)
                    last_exception.__cause__ = e
                except Urllib3TimeoutError as e:
                    last_exception = K8sTimeoutError(
                        f"Request timed out while trying to {op_name}: {e}", operation=op_name
                    )
                    last_exception.__cause__ = e
                except Urllib3HTTPError as e:
                    last_exception = K8sNetworkError(
                        f"Connection error while trying to {op_name}: {e}", operation=op_name
                    )
                    last_exception.__cause__ = e

                if not self._is_retryable_error(last_exception):
                    raise last_exception

                # Don't retry on the last attempt
                if attempt == retry_config.max_retries:
                    break

                delay = _calculate_exponential_backoff(
                    attempt,
                    retry_config.base_retry_delay,
                    retry_config.max_retry_delay,
                    retry_config.retry_jitter
                )
                self._log_retry_attempt(op_name, attempt + 1, delay, last_exception)
                time.sleep(delay)

            raise last_exception

        return wrapper
    return decorator


class KubernetesClient:
    """
    Kubernetes API client used by the namespace provisioner.

    Read operations return ``None`` when the object does not exist; every other
    API failure surfaces as a ``K8sBaseException`` subclass.
    """

    def __init__(self, config_obj: Optional[K8sClientConfig] = None):
        """
        Initialize the Kubernetes client.

        Args:
            config_obj: Configuration object for the client
        """
        self.config = config_obj or K8sClientConfig()
        self.logger = logging.getLogger(__name__)

        # Initialize client instances as None - will be set during authentication
        self.api_client: Optional[client.ApiClient] = None
        self.core_v1: Optional[client.CoreV1Api] = None
        self.apps_v1: Optional[client.AppsV1Api] = None
        self.rbac_v1: Optional[client.RbacAuthorizationV1Api] = None
        self.networking_v1: Optional[client.NetworkingV1Api] = None
        self.custom_objects: Optional[client.CustomObjectsApi] = None

        self._request_timeout = (self.config.connection_timeout, self.config.read_timeout)

        self.logger.info("KubernetesClient initialized")

    def authenticate(self, bearer_token: Optional[str] = None,
                     api_server_url: Optional[str] = None) -> bool:
        """
        Connect to the Kubernetes API.

        With a bearer token only the host and TLS settings are taken from the
        in-cluster configuration or kubeconfig. Without one the service account
        or kubeconfig credentials are used as-is.

        Args:
            bearer_token: Optional bearer token for authentication
            api_server_url: Optional API server URL override

        Returns:
            bool: True if authentication successful, False otherwise
        """
        try:
            configuration = client.Configuration()

            try:
                config.load_incluster_config(client_configuration=configuration)
                self.logger.info("Successfully loaded in-cluster configuration")
            except config.ConfigException as incluster_error:
                self.logger.debug(f"In-cluster config not available: {incluster_error}")
                try:
                    config.load_kube_config(client_configuration=configuration)
                    self.logger.info("Successfully loaded kubeconfig")
                except (config.ConfigException, OSError) as kubeconfig_error:
                    if not (api_server_url or self.config.api_server_url):
                        self.logger.error(f"No API server URL provided and unable to load configuration: "
                                          f"in-cluster error: {incluster_error}, kubeconfig error: {kubeconfig_error}")
                        return False

            if api_server_url:
                configuration.host = api_server_url
            elif self.config.api_server_url:
                configuration.host = self.config.api_server_url

            if bearer_token:
                configuration.api_key = {"authorization": f"Bearer {bearer_token}"}
                configuration.cert_file = None
                configuration.key_file = None

            configuration.verify_ssl = self.config.verify_ssl

            # Disable built-in retries, we handle them ourselves
            configuration.retries = False

            self.attach(client.ApiClient(configuration))

            # Test the connection
            self.core_v1.get_api_resources(_request_timeout=self._request_timeout)

            self.logger.info("Successfully authenticated with Kubernetes API")
            return True

        except (ApiException, Urllib3HTTPError) as e:
            self.logger.error(f"Failed to authenticate with Kubernetes API: {e}")
            self.api_client = None
            return False

    def attach(self, api_client: client.ApiClient) -> None:
        """Bind the API group clients to an existing ApiClient."""
        self.api_client = api_client
        self.core_v1 = client.CoreV1Api(api_client)
        self.apps_v1 = client.AppsV1Api(api_client)
        self.rbac_v1 = client.RbacAuthorizationV1Api(api_client)
        self.networking_v1 = client.NetworkingV1Api(api_client)
        self.custom_objects = client.CustomObjectsApi(api_client)

    def is_authenticated(self) -> bool:
        return self.api_client is not None

    def _ensure_authenticated(self) -> None:
        """
        Ensure the client is authenticated.

        Raises:
            RuntimeError: If client is not authenticated
        """
        if not self.is_authenticated():
            raise RuntimeError("Client not authenticated. Call authenticate() first.")

    def _to_dict(self, obj: Any) -> Optional[Dict[str, Any]]:
        """Convert an API model object into its manifest dictionary."""
        if obj is None or isinstance(obj, dict):
            return obj
        return self.api_client.sanitize_for_serialization(obj)

    def _read_or_none(self, reader: Callable, *args) -> Optional[Dict[str, Any]]:
        try:
            return self._to_dict(reader(*args, _request_timeout=self._request_timeout))
        except ApiException as e:
            if e.status == 404:
                return None
            raise

    @staticmethod
    def _metadata(name: str, labels: Optional[Dict[str, str]] = None,
                  annotations: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {'name': name}
        if labels:
            metadata['labels'] = dict(labels)
        if annotations:
            metadata['annotations'] = dict(annotations)
        return metadata

    def _format_api_error(self, api_exception: ApiException, operation: str) -> str:
        """
        Format API exception into user-friendly error message.

        Args:
            api_exception: The Kubernetes API exception
            operation: Description of the operation that failed

        Returns:
            str: Formatted error message
        """
        status_code = api_exception.status

        # Common status codes and their meanings
        error_messages = {
            401: "Authentication failed. Please check your credentials.",
            403: f"Access denied. You don't have permission to {operation}.",
            404: f"Resource not found while trying to {operation}.",
            409: f"Resource already exists while trying to {operation}.",
            500: f"Kubernetes API server error while trying to {operation}.",
            503: f"Kubernetes API server unavailable while trying to {operation}."
        }

        base_message = error_messages.get(status_code, f"API error ({status_code}) while trying to {operation}")

        # Add specific error details if available
        if api_exception.body:
            try:
                error_body = json.loads(api_exception.body)
                if isinstance(error_body, dict) and 'message' in error_body:
                    base_message += f" Details: {error_body['message']}"
            except (TypeError, ValueError):
                pass

        return base_message

    def _convert_api_exception(self, api_exception: ApiException, operation: str) -> K8sBaseException:
        """
        Convert ApiException to appropriate custom exception.

        Args:
            api_exception: The Kubernetes API exception
            operation: Description of the operation that failed

        Returns:
            K8sBaseException: Appropriate custom exception
        """
        status_code = api_exception.status
        context = {
            'operation': operation,
            'status_code': status_code,
            'reason': api_exception.reason,
            'body': api_exception.body
        }

        error_message = self._format_api_error(api_exception, operation)

        if status_code == 401:
            return K8sAuthenticationError(error_message, status_code, operation, context)
        elif status_code == 403:
            return K8sAuthorizationError(error_message, status_code, operation, context)
        elif status_code == 404:
            return K8sNotFoundError(error_message, status_code, operation, context)
        elif status_code == 409:
            return K8sConflictError(error_message, status_code, operation, context)
        elif status_code and status_code >= 500:
            return K8sServerError(error_message, status_code, operation, context)
        elif status_code == 0:
            return K8sNetworkError(error_message, status_code, operation, context)
        else:
            return K8sBaseException(error_message, status_code, operation, context)

    def _is_retryable_error(self, exception: Exception) -> bool:
        """
        Determine if an error is retryable.

        Args:
            exception: The exception to check

        Returns:
            bool: True if the error is retryable
        """
        # Network/timeout errors are retryable
        if isinstance(exception, (K8sNetworkError, K8sTimeoutError)):
            return True

        # Server errors (5xx) are usually retryable
        if isinstance(exception, K8sServerError):
            return True

        # Throttling
        if isinstance(exception, K8sBaseException):
            return exception.status_code == 429

        return False

    def _log_retry_attempt(self, operation: str, attempt: int, delay: float, exception: Exception) -> None:
        """
        Log retry attempt with detailed context.

        Args:
            operation: Name of the operation being retried
            attempt: Current attempt number
            delay: Delay before next attempt
            exception: Exception that triggered the retry
        """
        if not self.config.enable_detailed_logging:
            return

        context = {
            'operation': operation,
            'attempt': attempt,
            'delay': delay,
            'exception_type': type(exception).__name__,
            'exception_message': str(exception)
        }

        self.logger.warning(
            f"Retry attempt {attempt} for {operation} in {delay:.2f}s due to {type(exception).__name__}: {exception}",
            extra={'context': context}
        )

    # Namespaces

    @with_retry("get namespace")
    def get_namespace(self, name: str) -> Optional[Dict[str, Any]]:
        """
        Read a namespace.

        Args:
            name: Namespace name

        Returns:
            Optional[Dict[str, Any]]: Namespace manifest or None if it does not exist

        Raises:
            K8sAuthorizationError: If the caller may not read the namespace
            K8sBaseException: For any other API failure
        """
        self._ensure_authenticated()
        return self._read_or_none(self.core_v1.read_namespace, name)

    @with_retry("create namespace")
    def create_namespace(self, name: str, labels: Optional[Dict[str, str]] = None,
                         annotations: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Create a namespace.

        Raises:
            K8sConflictError: If the namespace already exists
        """
        self._ensure_authenticated()
        body = {
            'apiVersion': 'v1',
            'kind': 'Namespace',
            'metadata': self._metadata(name, labels, annotations)
        }
        created = self.core_v1.create_namespace(body, _request_timeout=self._request_timeout)
        self.logger.info(f"Created namespace {name}")
        return self._to_dict(created)

    @with_retry("patch namespace")
    def patch_namespace(self, name: str, labels: Optional[Dict[str, str]] = None,
                        annotations: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Merge labels and annotations into an existing namespace."""
        self._ensure_authenticated()
        metadata: Dict[str, Any] = {}
        if labels:
            metadata['labels'] = dict(labels)
        if annotations:
            metadata['annotations'] = dict(annotations)
        patched = self.core_v1.patch_namespace(
            name, {'metadata': metadata}, _request_timeout=self._request_timeout
        )
        return self._to_dict(patched)

    @with_retry("list namespaces")
    def list_namespaces(self, label_selector: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        List namespaces with automatic pagination.

        Args:
            label_selector: Optional label selector, e.g. ``a=b,c=d``

        Returns:
            List[Dict[str, Any]]: Namespace manifests in the order the cluster returns them
        """
        self._ensure_authenticated()
        result = []
        continue_token = None

        while True:
            kwargs = {'limit': PAGE_SIZE, '_request_timeout': self._request_timeout}
            if label_selector:
                kwargs['label_selector'] = label_selector
            if continue_token:
                kwargs['_continue'] = continue_token

            namespaces = self.core_v1.list_namespace(**kwargs)
            result.extend(self._to_dict(ns) for ns in namespaces.items)

            continue_token = namespaces.metadata._continue if namespaces.metadata else None
            if not continue_token:
                break

        self.logger.debug(f"Retrieved {len(result)} namespaces matching '{label_selector or ''}'")
        return result

    @with_retry("delete namespace")
    def delete_namespace(self, name: str) -> bool:
        """
        Delete a namespace.

        Returns:
            bool: False if the namespace was already gone
        """
        self._ensure_authenticated()
        try:
            self.core_v1.delete_namespace(name, _request_timeout=self._request_timeout)
        except ApiException as e:
            if e.status == 404:
                return False
            raise
        self.logger.info(f"Deleted namespace {name}")
        return True

    # OpenShift projects

    @with_retry("get project")
    def get_project(self, name: str) -> Optional[Dict[str, Any]]:
        self._ensure_authenticated()
        return self._read_or_none(
            self.custom_objects.get_cluster_custom_object,
            PROJECT_GROUP, PROJECT_VERSION, "projects", name
        )

    @with_retry("create project")
    def create_project(self, name: str, display_name: Optional[str] = None,
                       description: Optional[str] = None) -> Dict[str, Any]:
        """
        Request a new OpenShift project.

        Projects are created through ``projectrequests`` so that the cluster
        applies its project template.

        Raises:
            K8sConflictError: If the project already exists
        """
        self._ensure_authenticated()
        body: Dict[str, Any] = {
            'apiVersion': f"{PROJECT_GROUP}/{PROJECT_VERSION}",
            'kind': 'ProjectRequest',
            'metadata': {'name': name}
        }
        if display_name:
            body['displayName'] = display_name
        if description:
            body['description'] = description

        created = self.custom_objects.create_cluster_custom_object(
            PROJECT_GROUP, PROJECT_VERSION, "projectrequests", body,
            _request_timeout=self._request_timeout
        )
        self.logger.info(f"Requested project {name}")
        return created

    @with_retry("list projects")
    def list_projects(self, label_selector: Optional[str] = None) -> List[Dict[str, Any]]:
        self._ensure_authenticated()
        result = []
        continue_token = None

        while True:
            kwargs = {'limit': PAGE_SIZE, '_request_timeout': self._request_timeout}
            if label_selector:
                kwargs['label_selector'] = label_selector
            if continue_token:
                kwargs['_continue'] = continue_token

            projects = self.custom_objects.list_cluster_custom_object(
                PROJECT_GROUP, PROJECT_VERSION, "projects", **kwargs
            )
            result.extend(projects.get('items', []))

            continue_token = projects.get('metadata', {}).get('continue')
            if not continue_token:
                break

        return result

    @with_retry("delete project")
    def delete_project(self, name: str) -> bool:
        self._ensure_authenticated()
        try:
            self.custom_objects.delete_cluster_custom_object(
                PROJECT_GROUP, PROJECT_VERSION, "projects", name,
                _request_timeout=self._request_timeout
            )
        except ApiException as e:
            if e.status == 404:
                return False
            raise
        self.logger.info(f"Deleted project {name}")
        return True

    # Service accounts and RBAC

    @with_retry("get service account")
    def get_service_account(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        self._ensure_authenticated()
        return self._read_or_none(self.core_v1.read_namespaced_service_account, name, namespace)

    @with_retry("create service account")
    def create_service_account(self, namespace: str, name: str,
                               labels: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        self._ensure_authenticated()
        body = {
            'apiVersion': 'v1',
            'kind': 'ServiceAccount',
            'metadata': self._metadata(name, labels),
            'automountServiceAccountToken': True
        }
        created = self.core_v1.create_namespaced_service_account(
            namespace, body, _request_timeout=self._request_timeout
        )
        self.logger.info(f"Created service account {namespace}/{name}")
        return self._to_dict(created)

    @with_retry("get role")
    def get_role(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        self._ensure_authenticated()
        return self._read_or_none(self.rbac_v1.read_namespaced_role, name, namespace)

    @with_retry("create role")
    def create_role(self, namespace: str, name: str, rules: List[Dict[str, Any]],
                    labels: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Create a namespaced role.

        Args:
            namespace: Target namespace
            name: Role name
            rules: Policy rules as manifest dictionaries
            labels: Optional labels
        """
        self._ensure_authenticated()
        body = {
            'apiVersion': 'rbac.authorization.k8s.io/v1',
            'kind': 'Role',
            'metadata': self._metadata(name, labels),
            'rules': rules
        }
        created = self.rbac_v1.create_namespaced_role(
            namespace, body, _request_timeout=self._request_timeout
        )
        self.logger.info(f"Created role {namespace}/{name}")
        return self._to_dict(created)

    @with_retry("get role binding")
    def get_role_binding(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        self._ensure_authenticated()
        return self._read_or_none(self.rbac_v1.read_namespaced_role_binding, name, namespace)

    @with_retry("create role binding")
    def create_role_binding(self, namespace: str, name: str, role_kind: str, role_name: str,
                            subjects: List[Dict[str, Any]],
                            labels: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Create a role binding.

        Args:
            namespace: Target namespace
            name: Binding name
            role_kind: ``Role`` or ``ClusterRole``
            role_name: Name of the referenced role
            subjects: Subjects as manifest dictionaries
            labels: Optional labels
        """
        self._ensure_authenticated()
        body = {
            'apiVersion': 'rbac.authorization.k8s.io/v1',
            'kind': 'RoleBinding',
            'metadata': self._metadata(name, labels),
            'roleRef': {
                'apiGroup': 'rbac.authorization.k8s.io',
                'kind': role_kind,
                'name': role_name
            },
            'subjects': subjects
        }
        created = self.rbac_v1.create_namespaced_role_binding(
            namespace, body, _request_timeout=self._request_timeout
        )
        self.logger.info(f"Created role binding {namespace}/{name} -> {role_kind}/{role_name}")
        return self._to_dict(created)

    @with_retry("get cluster role")
    def get_cluster_role(self, name: str) -> Optional[Dict[str, Any]]:
        self._ensure_authenticated()
        return self._read_or_none(self.rbac_v1.read_cluster_role, name)

    @with_retry("probe API path")
    def supports_api_path(self, path: str) -> bool:
        """
        Check whether the API server serves a path such as ``/apis/metrics.k8s.io``.

        Returns:
            bool: False if the path is not served

        Raises:
            K8sAuthorizationError: If the caller may not read the path
        """
        self._ensure_authenticated()
        try:
            self.api_client.call_api(
                path, 'GET',
                auth_settings=['BearerToken'],
                response_type='object',
                _return_http_data_only=True,
                _request_timeout=self._request_timeout
            )
        except ApiException as e:
            if e.status == 404:
                return False
            raise
        return True

    # Secrets and config maps

    @with_retry("get secret")
    def get_secret(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        self._ensure_authenticated()
        return self._read_or_none(self.core_v1.read_namespaced_secret, name, namespace)

    def _secret_body(self, name: str, string_data: Optional[Dict[str, str]], secret_type: str,
                     labels: Optional[Dict[str, str]],
                     annotations: Optional[Dict[str, str]]) -> Dict[str, Any]:
        body = {
            'apiVersion': 'v1',
            'kind': 'Secret',
            'metadata': self._metadata(name, labels, annotations),
            'type': secret_type
        }
        if string_data:
            body['stringData'] = dict(string_data)
        return body

    @with_retry("create secret")
    def create_secret(self, namespace: str, name: str, string_data: Optional[Dict[str, str]] = None,
                      secret_type: str = "Opaque", labels: Optional[Dict[str, str]] = None,
                      annotations: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        self._ensure_authenticated()
        body = self._secret_body(name, string_data, secret_type, labels, annotations)
        created = self.core_v1.create_namespaced_secret(
            namespace, body, _request_timeout=self._request_timeout
        )
        self.logger.info(f"Created secret {namespace}/{name}")
        return self._to_dict(created)

    @with_retry("replace secret")
    def replace_secret(self, namespace: str, name: str, string_data: Optional[Dict[str, str]] = None,
                       secret_type: str = "Opaque", labels: Optional[Dict[str, str]] = None,
                       annotations: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        self._ensure_authenticated()
        body = self._secret_body(name, string_data, secret_type, labels, annotations)
        replaced = self.core_v1.replace_namespaced_secret(
            name, namespace, body, _request_timeout=self._request_timeout
        )
        self.logger.info(f"Replaced secret {namespace}/{name}")
        return self._to_dict(replaced)

    @with_retry("get config map")
    def get_config_map(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        self._ensure_authenticated()
        return self._read_or_none(self.core_v1.read_namespaced_config_map, name, namespace)

    @with_retry("create config map")
    def create_config_map(self, namespace: str, name: str, data: Optional[Dict[str, str]] = None,
                          labels: Optional[Dict[str, str]] = None,
                          annotations: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        self._ensure_authenticated()
        body = {
            'apiVersion': 'v1',
            'kind': 'ConfigMap',
            'metadata': self._metadata(name, labels, annotations),
            'data': dict(data or {})
        }
        created = self.core_v1.create_namespaced_config_map(
            namespace, body, _request_timeout=self._request_timeout
        )
        self.logger.info(f"Created config map {namespace}/{name}")
        return self._to_dict(created)

    # Label-based cleanup of workspace objects

    @with_retry("delete deployments")
    def delete_deployments(self, namespace: str, label_selector: str) -> None:
        self._ensure_authenticated()
        self.apps_v1.delete_collection_namespaced_deployment(
            namespace, label_selector=label_selector, _request_timeout=self._request_timeout
        )

    @with_retry("delete services")
    def delete_services(self, namespace: str, label_selector: str) -> None:
        # Services have no collection delete endpoint
        self._ensure_authenticated()
        services = self.core_v1.list_namespaced_service(
            namespace, label_selector=label_selector, _request_timeout=self._request_timeout
        )
        for service in services.items:
            try:
                self.core_v1.delete_namespaced_service(
                    service.metadata.name, namespace, _request_timeout=self._request_timeout
                )
            except ApiException as e:
                if e.status != 404:
                    raise

    @with_retry("delete ingresses")
    def delete_ingresses(self, namespace: str, label_selector: str) -> None:
        self._ensure_authenticated()
        self.networking_v1.delete_collection_namespaced_ingress(
            namespace, label_selector=label_selector, _request_timeout=self._request_timeout
        )

    @with_retry("delete routes")
    def delete_routes(self, namespace: str, label_selector: str) -> None:
        self._ensure_authenticated()
        routes = self.custom_objects.list_namespaced_custom_object(
            ROUTE_GROUP, ROUTE_VERSION, namespace, "routes",
            label_selector=label_selector, _request_timeout=self._request_timeout
        )
        for route in routes.get('items', []):
            try:
                self.custom_objects.delete_namespaced_custom_object(
                    ROUTE_GROUP, ROUTE_VERSION, namespace, "routes", route['metadata']['name'],
                    _request_timeout=self._request_timeout
                )
            except ApiException as e:
                if e.status != 404:
                    raise

    @with_retry("delete secrets")
    def delete_secrets(self, namespace: str, label_selector: str) -> None:
        self._ensure_authenticated()
        self.core_v1.delete_collection_namespaced_secret(
            namespace, label_selector=label_selector, _request_timeout=self._request_timeout
        )

    @with_retry("delete config maps")
    def delete_config_maps(self, namespace: str, label_selector: str) -> None:
        self._ensure_authenticated()
        self.core_v1.delete_collection_namespaced_config_map(
            namespace, label_selector=label_selector, _request_timeout=self._request_timeout
        )

    def close(self) -> None:
        """Close the client and clean up resources."""
        if self.api_client:
            self.api_client.close()
        self.logger.info("KubernetesClient closed")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, _exc_type, _exc_val, _exc_tb):
        """Context manager exit."""
        self.close()
