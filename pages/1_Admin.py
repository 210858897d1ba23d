# pages/1_Admin.py
import pandas as pd
import streamlit as st

import config
from leaderboard.csv_import import decode_upload
from leaderboard.errors import ConfigurationError
from leaderboard.session import dispatch, get_controller, get_state, set_state
from leaderboard.state import ErrorDismissed, ImportCleared

st.set_page_config(page_title="Admin", page_icon="🛠️", layout="wide")


def require_admin(controller):
    if get_state().is_admin:
        return True
    with st.form("admin_login"):
        code = st.text_input("Enter Admin Code", type="password")
        submitted = st.form_submit_button("Unlock Admin")
        if submitted:
            state = set_state(controller.login(get_state(), code))
            if state.is_admin:
                st.success("Admin unlocked.")
                return True
            st.error(state.error)
    return False


def show_messages():
    state = get_state()
    if state.error:
        st.error(state.error)
    elif state.notice:
        st.success(state.notice)


def add_ui(controller):
    st.subheader("Add Points")
    st.caption("Adds to the player's total if the name already exists (case-insensitive), otherwise creates them.")
    games = config.games()
    with st.form("add_points", clear_on_submit=True):
        name = st.text_input("Player name")
        points = st.number_input("Points", min_value=0, step=1, value=0)
        game = st.selectbox("Game", games) if games else None
        if st.form_submit_button("➕ Add", type="primary"):
            set_state(controller.add_or_accumulate(get_state(), name, points, game))
            st.rerun()


def import_ui(controller):
    st.subheader("Import CSV")
    games = config.games()
    if games:
        st.caption(
            "CSV columns required: name, points, game (or games, separated by ';'). "
            f"Games: {', '.join(games)}"
        )
    else:
        st.caption("CSV columns required: name, points")
    f = st.file_uploader("leaderboard.csv", type=["csv"], key="leaderboard_upload")
    if f and st.button("Preview Import"):
        set_state(controller.stage_import(get_state(), decode_upload(f.getvalue())))
        st.rerun()

    preview = get_state().staged_import
    if preview is None:
        return

    st.markdown(f"**{preview.summary}**")
    st.dataframe(
        pd.DataFrame(
            [{"name": r.name, "points": r.points, "games": "; ".join(g or "" for g in r.games)} for r in preview.rows]
        ),
        use_container_width=True,
        hide_index=True,
    )
    c1, c2 = st.columns(2)
    if c1.button("Import", type="primary"):
        set_state(controller.apply_import(get_state()))
        st.rerun()
    if c2.button("Discard"):
        dispatch(ImportCleared(), ErrorDismissed())
        st.rerun()


def danger_ui(controller):
    st.subheader("Clear Leaderboard")
    st.warning("This deletes every entry in every game.")
    confirm = st.checkbox("I understand, delete everything")
    if st.button("🗑️ Clear All", disabled=not confirm):
        set_state(controller.clear_all(get_state()))
        st.rerun()


def main():
    st.title("🛠️ Admin")

    try:
        controller = get_controller()
    except ConfigurationError as exc:
        st.error(str(exc))
        st.stop()

    if not require_admin(controller):
        st.stop()

    show_messages()
    tabs = st.tabs(["Add Points", "Import CSV", "Clear"])
    with tabs[0]:
        add_ui(controller)
    with tabs[1]:
        import_ui(controller)
    with tabs[2]:
        danger_ui(controller)


if __name__ == "__main__":
    main()
