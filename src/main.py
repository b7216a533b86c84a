import streamlit as st
import os
import logging
from typing import List, Optional

import pandas as pd

# Import authentication functions
from auth import (
    UserInfo,
    get_user_from_headers,
    set_dev_headers,
    clear_dev_headers
)

from workspace_namespaces import (
    InMemoryPreferenceStore,
    K8sClientConfig,
    KubernetesClient,
    NamespaceFactory,
    NamespaceMeta,
    NamespaceProvisioningError,
    RuntimeIdentity,
    ValidationError,
    create_namespace_factory,
    create_namespace_provisioner,
    load_config_from_env
)
from workspace_namespaces.models import DESCRIPTION_ATTRIBUTE, DISPLAY_NAME_ATTRIBUTE

st.set_page_config(
    page_title="Workspace Namespaces",
    page_icon="📦",
    layout="wide",
    initial_sidebar_state="collapsed"
)

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@st.cache_resource
def get_preference_store() -> InMemoryPreferenceStore:
    """Preferences shared by every session of this process."""
    return InMemoryPreferenceStore()


@st.cache_resource
def get_namespace_factory(bearer_token: Optional[str]) -> Optional[NamespaceFactory]:
    """Initialize and cache the namespace factory for a user's token."""
    k8s_client = KubernetesClient(K8sClientConfig(
        api_server_url=os.getenv('K8S_API_SERVER_URL') or None,
        connection_timeout=30,
        read_timeout=60,
        max_retries=3
    ))

    if not k8s_client.authenticate(bearer_token):
        logging.error("Failed to authenticate with Kubernetes API")
        return None

    try:
        return create_namespace_factory(load_config_from_env(), k8s_client, get_preference_store())
    except NamespaceProvisioningError as e:
        logging.error(f"Failed to initialize namespace factory: {e}")
        return None


def namespaces_dataframe(namespaces: List[NamespaceMeta]) -> pd.DataFrame:
    """Tabular view of namespaces for display."""
    rows = [
        {
            'Name': ns.name,
            'Default': '✅' if ns.is_default else '',
            'Phase': ns.phase or 'Not created',
            'Display Name': ns.attributes.get(DISPLAY_NAME_ATTRIBUTE, ''),
            'Description': ns.attributes.get(DESCRIPTION_ATTRIBUTE, '')
        }
        for ns in namespaces
    ]
    return pd.DataFrame(rows, columns=['Name', 'Default', 'Phase', 'Display Name', 'Description'])


def main():
    st.title("📦 Workspace Namespaces")
    st.markdown("### Per-user namespaces for cloud workspaces")

    user = get_user_from_headers()
    if not user:
        show_authentication_page()
        return

    factory = get_namespace_factory(user.bearer_token)
    if factory is None:
        st.error("❌ Kubernetes client not available")
        st.caption("Unable to connect to Kubernetes API. Please check authentication and configuration.")
        return

    show_main_interface(user, factory)


def show_authentication_page():
    """Display authentication required page with development options."""
    st.warning("🔒 Authentication Required")
    st.info("Please authenticate through the OAuth proxy to manage your workspace namespaces.")

    if os.getenv('DEV_MODE', '').lower() == 'true':
        st.markdown("---")
        st.subheader("🧪 Development Mode")
        user_id = st.text_input("User ID", value="d7a3c9e2")
        user_name = st.text_input("User Name", value="jondoe")
        token = st.text_input("Bearer Token", value="")

        if st.button("Set Development User"):
            set_dev_headers(user_id, user_name, [], token or None)
            st.success("Development user set! Refreshing...")
            st.rerun()


def show_main_interface(user: UserInfo, factory: NamespaceFactory):
    """Display the namespace list, name check and provisioning for a signed-in user."""
    context = user.to_resolution_context()

    col1, col2 = st.columns([3, 1])

    with col1:
        st.subheader("🗂️ Your Namespaces")
        try:
            with st.spinner("Loading namespaces..."):
                namespaces = factory.list_namespaces(context)
            st.dataframe(namespaces_dataframe(namespaces), use_container_width=True, hide_index=True)
        except NamespaceProvisioningError as e:
            st.error(f"❌ Failed to load namespaces: {e}")

    with col2:
        st.subheader("👤 User Details")
        st.text(f"User ID: {user.user_id}")
        st.text(f"User Name: {user.user_name}")
        if user.email:
            st.text(f"Email: {user.email}")

    st.markdown("---")

    col1, col2 = st.columns(2)

    with col1:
        st.subheader("🔎 Check Namespace")
        requested = st.text_input("Namespace name", key="requested_namespace")
        if st.button("Check", disabled=not requested):
            try:
                factory.check_allowed(requested.strip(), context)
                st.success(f"Namespace '{requested.strip()}' can be used")
            except ValidationError as e:
                st.warning(str(e))
            except NamespaceProvisioningError as e:
                st.error(f"❌ {e}")

    with col2:
        st.subheader("🚀 Provision Namespace")
        workspace_id = st.text_input("Workspace ID", key="workspace_id")
        if st.button("Provision", disabled=not workspace_id):
            identity = RuntimeIdentity(
                workspace_id=workspace_id.strip(),
                owner_id=user.user_id,
                owner_name=user.user_name
            )
            try:
                with st.spinner("Provisioning namespace..."):
                    access = factory.get_or_create(identity)
                st.success(f"Namespace '{access.name}' is ready")
            except NamespaceProvisioningError as e:
                st.error(f"❌ {e}")

    st.markdown("---")
    st.subheader("🏠 Default Namespace")
    if st.button("Provision my default namespace"):
        try:
            with st.spinner("Provisioning default namespace..."):
                meta = create_namespace_provisioner(factory, get_preference_store()).provision(context)
            st.success(f"Default namespace '{meta.name}' is ready")
        except NamespaceProvisioningError as e:
            st.error(f"❌ {e}")

    if os.getenv('DEV_MODE', '').lower() == 'true':
        with st.expander("🧪 Development Options"):
            if st.button("Clear Auth Headers"):
                clear_dev_headers()
                st.rerun()


if __name__ == "__main__":
    main()
