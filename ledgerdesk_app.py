import streamlit as st

from config.app_config import get_config
from services.app_context import AppContext, build_app_context
from services.auth_service.authorization import Destination
from services.ui_service.console_pages import ConsolePages, current_path
from utils.logging_config import initialize_logging, get_logger, log_execution_time

# Initialize logging and error tracking
error_tracker = initialize_logging()
logger = get_logger(__name__)

# Get configuration
config = get_config()

APP_CONTEXT_KEY = "app_context"


def get_app_context() -> AppContext:
    """Build this browser session's services once and keep them in session state"""
    if APP_CONTEXT_KEY not in st.session_state:
        with log_execution_time(logger, "app context setup"):
            context = build_app_context(config, error_tracker)
            context.session_store.initialize()
        st.session_state[APP_CONTEXT_KEY] = context
    return st.session_state[APP_CONTEXT_KEY]


def reset_app_context():
    """Drop this browser session's services, releasing their subscriptions"""
    context = st.session_state.pop(APP_CONTEXT_KEY, None)
    if context is not None:
        context.close()


def main():
    st.set_page_config(page_title=config.ui.app_title, page_icon="📒", layout="wide")

    try:
        context = get_app_context()
    except Exception as e:
        error_tracker.track_error(e, "app_context_setup")
        st.error("The console could not start. Please refresh the page.")
        return

    try:
        context.check_session()
    except Exception as e:
        error_tracker.track_error(e, "session_check")

    resolution = context.router.resolve(current_path(Destination.DASHBOARD))
    ConsolePages(context).render(resolution)

    if config.debug:
        with st.sidebar.expander("Developer tools"):
            st.json(config.to_dict())
            if st.button("Reset session and demo data"):
                reset_app_context()
                st.rerun()


main()
