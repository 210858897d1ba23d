# leaderboard/session.py
import atexit
import logging

import streamlit as st

from leaderboard import db
from leaderboard.changes import ChangeFeed
from leaderboard.controller import Controller
from leaderboard.state import ViewState, reduce

logger = logging.getLogger(__name__)

STATE_KEY = "view_state"


@st.cache_resource
def get_controller() -> Controller:
    """One controller (and change feed) per server process."""
    db.init_db()
    feed = None
    if db.is_postgres():
        feed = ChangeFeed.from_engine(db.get_engine())
        feed.start()
        atexit.register(feed.close)
    else:
        logger.info("No change feed for %s; the board will poll", db.get_engine().dialect.name)
    return Controller(feed)


def get_state() -> ViewState:
    if STATE_KEY not in st.session_state:
        st.session_state[STATE_KEY] = ViewState()
    return st.session_state[STATE_KEY]


def set_state(state: ViewState) -> ViewState:
    st.session_state[STATE_KEY] = state
    return state


def dispatch(*actions) -> ViewState:
    return set_state(reduce(get_state(), *actions))
