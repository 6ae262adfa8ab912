"""
Console pages - Streamlit screens over the session, routing and messaging services.
"""

import streamlit as st
from typing import Dict, Optional

from services.app_context import AppContext
from services.auth_service.authorization import Destination
from services.auth_service.models import Identity, Role
from services.chat_service.messaging import ReplyOutcome
from services.chat_service.models import Conversation, ConversationStatus, MessageOrigin
from services.routing_service.router import RouteResolution
from utils.logging_config import get_logger, log_user_interaction


CURRENT_PATH_KEY = "current_path"

SIGN_UP_ROLES = [role.value for role in Role]

PLACEHOLDER_SCREENS = {
    Destination.DOCUMENTS: ("📄 Documents", "Client documents are managed in the document store."),
    Destination.TASKS: ("✅ Tasks", "Task boards are managed in the practice records system."),
    Destination.COMPLIANCE: ("📅 Compliance", "Filing deadlines are tracked in the compliance calendar."),
    Destination.WORKPAPERS: ("🗂️ Workpapers", "Workpapers are managed in the engagement file."),
}

OUTCOME_MESSAGES = {
    ReplyOutcome.EMPTY: "Type a message before sending.",
    ReplyOutcome.NOT_FOUND: "This conversation no longer exists.",
    ReplyOutcome.LOCKED: "This conversation has been claimed by another team member.",
    ReplyOutcome.FORBIDDEN: "Only staff can reply to client conversations.",
}


def navigate(path: str):
    """Switch to another destination on the next run"""
    st.session_state[CURRENT_PATH_KEY] = path
    st.rerun()


def current_path(default: str = Destination.DASHBOARD) -> str:
    return st.session_state.get(CURRENT_PATH_KEY, default)


class ConsolePages:
    """
    Renders the screen a RouteResolution points at.
    Screens read snapshots from the services and re-read them after every change.
    """

    def __init__(self, context: AppContext):
        self.context = context
        self.logger = get_logger(__name__)

    @property
    def identity(self) -> Optional[Identity]:
        return self.context.session_store.identity

    def render(self, resolution: RouteResolution):
        """Render the resolved destination"""
        if resolution.destination is None:
            self.render_loading()
            return

        if resolution.redirected:
            self.logger.debug(f"Redirected {resolution.redirected_from} -> {resolution.path}")
            st.session_state[CURRENT_PATH_KEY] = resolution.path

        if resolution.destination not in (Destination.LOGIN, Destination.SIGNUP, Destination.FORGOT_PASSWORD):
            self.render_sidebar()

        screens = {
            Destination.LOGIN: self.render_login,
            Destination.SIGNUP: self.render_signup,
            Destination.FORGOT_PASSWORD: self.render_forgot_password,
            Destination.DASHBOARD: self.render_dashboard,
            Destination.CLIENTS: self.render_clients,
            Destination.SETTINGS: self.render_settings,
            Destination.USERS: self.render_user_management,
            Destination.CLIENT_PORTAL: self.render_client_portal,
        }

        if resolution.destination == Destination.CLIENT_DETAIL:
            self.render_client_detail(resolution.params)
        elif resolution.destination in PLACEHOLDER_SCREENS:
            title, note = PLACEHOLDER_SCREENS[resolution.destination]
            st.title(title)
            st.info(note)
        else:
            screens[resolution.destination]()

    def render_loading(self):
        with st.spinner("Checking your session..."):
            st.empty()

    def render_sidebar(self):
        identity = self.identity
        with st.sidebar:
            st.markdown(f"## {self.context.config.ui.app_title}")
            if identity is not None:
                st.write(f"**{identity.full_name}**")
                st.caption(f"Role: {identity.role.value.title()}")
            else:
                st.warning("Your profile could not be loaded.")

            st.divider()
            for route in self.context.router.navigation_for(identity):
                if st.button(route.title, key=f"nav_{route.path}", use_container_width=True):
                    log_user_interaction(self.logger, "navigate", path=route.path)
                    navigate(route.path)

            st.divider()
            if st.button("🚪 Logout", use_container_width=True):
                if not self.context.session_store.logout():
                    st.warning("Signed out locally; the server session could not be closed.")
                navigate(Destination.LOGIN)

    # --- Public screens ---

    def render_login(self):
        st.title(f"🔐 {self.context.config.ui.app_title}")
        st.caption(self.context.config.ui.tagline)

        with st.form("login_form"):
            email = st.text_input("Email", placeholder="you@practice.com")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign in", type="primary", use_container_width=True)

        if submitted:
            error = self.context.auth_provider.sign_in_with_password(email, password)
            if error:
                st.error(error)
            else:
                navigate(Destination.DASHBOARD)

        col1, col2 = st.columns(2)
        with col1:
            if st.button("Create an account", use_container_width=True):
                navigate(Destination.SIGNUP)
        with col2:
            if st.button("Forgot password?", use_container_width=True):
                navigate(Destination.FORGOT_PASSWORD)

    def render_signup(self):
        st.title("📝 Create account")

        if not self.context.config.auth.allow_self_registration:
            st.info("Accounts are created by your practice administrator.")
        else:
            with st.form("signup_form"):
                full_name = st.text_input("Full name")
                email = st.text_input("Email")
                password = st.text_input("Password", type="password")
                role = st.selectbox("Role", SIGN_UP_ROLES, index=SIGN_UP_ROLES.index(Role.STAFF.value))
                submitted = st.form_submit_button("Create account", type="primary", use_container_width=True)

            if submitted:
                error = self.context.auth_provider.sign_up(
                    email, password, {"full_name": full_name, "role": role}
                )
                if error:
                    st.error(error)
                else:
                    st.success("Account created. You can now sign in.")

        if st.button("Back to sign in"):
            navigate(Destination.LOGIN)

    def render_forgot_password(self):
        st.title("🔑 Reset password")
        reset_token = st.query_params.get("reset_token")

        if reset_token:
            with st.form("new_password_form"):
                new_password = st.text_input("New password", type="password")
                confirm = st.text_input("Confirm password", type="password")
                submitted = st.form_submit_button("Reset password", type="primary")

            if submitted:
                if new_password != confirm:
                    st.error("Passwords do not match")
                else:
                    error = self.context.auth_provider.reset_password(reset_token, new_password)
                    if error:
                        st.error(error)
                    else:
                        st.query_params.clear()
                        st.success("Password updated. You can now sign in.")
        else:
            with st.form("reset_request_form"):
                email = st.text_input("Email")
                submitted = st.form_submit_button("Send reset link", type="primary")

            if submitted:
                token = self.context.auth_provider.request_password_reset(email)
                st.success("If an account exists for that email, a reset link is on its way.")
                if token and self.context.config.debug:
                    st.caption("Development reset link:")
                    st.code(f"?reset_token={token}", language="text")

        if st.button("Back to sign in"):
            navigate(Destination.LOGIN)

    # --- Staff screens ---

    def render_dashboard(self):
        identity = self.identity
        messaging = self.context.messaging
        st.title("📊 Dashboard")

        unassigned = messaging.unassigned_inbox()
        mine = [c for c in messaging.staff_inbox(identity) if c.is_assigned] if identity else []

        col1, col2 = st.columns(2)
        col1.metric("Unassigned conversations", len(unassigned))
        col2.metric("My conversations", len(mine))

        st.subheader("📥 Unassigned client messages")
        self._render_inbox(unassigned, "unassigned")

        if mine:
            st.subheader("💬 My conversations")
            self._render_inbox(mine, "mine")

    def render_clients(self):
        st.title("👥 Clients")
        clients = self.context.profile_provider.list_profiles(Role.CLIENT)
        if not clients:
            st.info("No client accounts yet.")

        for client in clients:
            conversation = self.context.registry.find_by_client(client.id)
            col1, col2 = st.columns([3, 1])
            with col1:
                status = conversation.status.value if conversation else "no messages"
                st.write(f"**{client.full_name}** · {status}")
            with col2:
                if st.button("Open", key=f"client_{client.id}", use_container_width=True):
                    navigate(f"/clients/{client.id}")

    def render_client_detail(self, params: Dict[str, str]):
        identity = self.identity
        client_id = params.get("id")
        conversation = self.context.registry.find_by_client(client_id)

        st.title(f"🏢 {conversation.client_name if conversation else 'Client'}")
        if st.button("← Back to dashboard"):
            navigate(Destination.DASHBOARD)

        st.subheader("Messages")
        if conversation is None:
            st.info("This client has not sent any messages yet.")
            return

        if identity is None or not self.context.messaging.can_reply(identity, conversation):
            st.warning(
                f"🔒 This conversation is private. It is being handled by {conversation.assignee_name}."
            )
            return

        self._render_messages(conversation, own_origin=MessageOrigin.STAFF)
        if not conversation.is_assigned:
            st.caption("Replying will claim this conversation and make it private to you.")

        text = st.chat_input("Write a reply")
        if text:
            outcome = self.context.messaging.send_staff_reply(identity, conversation.id, text)
            if outcome.delivered:
                log_user_interaction(self.logger, "staff_reply", conversation_id=conversation.id,
                                     outcome=outcome.value)
                st.rerun()
            else:
                st.error(OUTCOME_MESSAGES[outcome])

    def render_settings(self):
        identity = self.identity
        st.title("⚙️ Settings")
        if identity is None:
            st.warning("Your profile could not be loaded.")
            return

        with st.form("profile_form"):
            full_name = st.text_input("Full name", value=identity.full_name)
            avatar_url = st.text_input("Avatar URL", value=identity.avatar_url or "")
            submitted = st.form_submit_button("Save", type="primary")

        if submitted:
            try:
                self.context.user_repository.update_profile(identity.id, full_name, avatar_url)
            except ValueError as e:
                st.error(str(e))
            else:
                self.context.auth_provider.notify_user_updated()
                st.success("Profile updated.")

        st.caption(f"Role: {identity.role.value.title()}")

    def render_user_management(self):
        st.title("🛡️ User management")
        profiles = self.context.profile_provider.list_profiles()
        st.dataframe(
            [
                {"Name": p.full_name, "Role": p.role.value, "Created": p.created_at.strftime("%Y-%m-%d")}
                for p in profiles
            ],
            use_container_width=True
        )

    # --- Client screen ---

    def render_client_portal(self):
        identity = self.identity
        st.title("🏠 Client portal")
        if identity is None:
            st.warning("Your profile could not be loaded.")
            return

        conversation = self.context.messaging.client_conversation(identity)
        st.subheader("Secure messages")
        if conversation.is_assigned:
            st.caption(f"Handled by {conversation.assignee_name}")
        self._render_messages(conversation, own_origin=MessageOrigin.CLIENT)

        text = st.chat_input("Message your accountant")
        if text:
            if self.context.messaging.send_client_message(identity, text) is not None:
                log_user_interaction(self.logger, "client_message", conversation_id=conversation.id)
            st.rerun()

    # --- Helpers ---

    def _render_inbox(self, conversations, key_prefix: str):
        if not conversations:
            st.caption("Nothing here.")
            return

        preview_length = self.context.config.ui.inbox_preview_length
        for summary in self.context.registry.summaries(conversations, preview_length):
            col1, col2 = st.columns([4, 1])
            with col1:
                st.write(f"**{summary.client_avatar} · {summary.client_name}**")
                if summary.preview_text:
                    st.caption(summary.preview_text)
                if summary.status == ConversationStatus.ASSIGNED:
                    st.caption(f"Assigned to {summary.assignee_name}")
            with col2:
                if st.button("Open", key=f"{key_prefix}_{summary.conversation_id}", use_container_width=True):
                    navigate(f"/clients/{summary.client_id}")

    def _render_messages(self, conversation: Conversation, own_origin: MessageOrigin):
        if not conversation.messages:
            st.caption("No messages yet.")
        for message in conversation.messages:
            role = "user" if message.origin == own_origin else "assistant"
            with st.chat_message(role):
                lock = "🔒 " if message.is_private else ""
                st.caption(f"{lock}{message.author} · {message.timestamp}")
                st.write(message.text)
