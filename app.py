# app.py
import logging

import streamlit as st

import config
from config import APP_TITLE
from leaderboard.errors import ConfigurationError
from leaderboard.session import dispatch, get_controller, get_state, set_state
from leaderboard.state import (
    AdminLoginShown,
    CopyFinished,
    CopyStarted,
    EditFinished,
    EditPointsChanged,
    EditStarted,
    ErrorDismissed,
    GameFilterChanged,
    SearchChanged,
    SortChanged,
)
from leaderboard.view import SORT_KEYS, derive_view, group_by_game, to_frame

st.set_page_config(page_title=APP_TITLE, page_icon="🏆", layout="centered")
logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

SORT_LABELS = {"points": "Points", "name": "Name", "created_at": "Date added"}
ALL_GAMES = "All games"


def messages():
    state = get_state()
    if state.error:
        c1, c2 = st.columns([6, 1])
        c1.error(state.error)
        if c2.button("Dismiss", key="dismiss_error"):
            dispatch(ErrorDismissed())
            st.rerun(scope="fragment")
    elif state.notice:
        st.success(state.notice)


def controls():
    state = get_state()
    games = config.games()

    search = st.text_input("Search players", value=state.search, placeholder="Type part of a name")
    c1, c2, c3 = st.columns([2, 1, 2])
    with c1:
        sort_key = st.selectbox(
            "Sort by", SORT_KEYS, index=SORT_KEYS.index(state.sort_key), format_func=SORT_LABELS.get
        )
    with c2:
        descending = st.toggle("Descending", value=state.descending)
    with c3:
        game = None
        if games:
            options = [ALL_GAMES] + list(games)
            current = state.game_filter if state.game_filter in games else ALL_GAMES
            picked = st.selectbox("Game", options, index=options.index(current))
            game = None if picked == ALL_GAMES else picked

    actions = []
    if search != state.search:
        actions.append(SearchChanged(search))
    if (sort_key, descending) != (state.sort_key, state.descending):
        actions.append(SortChanged(sort_key, descending))
    if game != state.game_filter:
        actions.append(GameFilterChanged(game))
    if actions:
        dispatch(*actions)


def admin_row(controller, entry, rank: int):
    state = get_state()
    games = config.games()
    c_rank, c_name, c_points, c_actions = st.columns([1, 4, 2, 5])
    c_rank.markdown(f"**{rank:02d}**")
    c_name.write(entry.name)

    if state.editing_id == entry.id:
        points = c_points.number_input(
            "Points", min_value=0, step=1, value=int(state.edit_points),
            key=f"edit_{entry.id}", label_visibility="collapsed",
        )
        if points != state.edit_points:
            dispatch(EditPointsChanged(int(points)))
        b1, b2 = c_actions.columns(2)
        if b1.button("Save", key=f"save_{entry.id}", type="primary"):
            set_state(controller.set_points(get_state(), entry.id, points))
            st.rerun(scope="fragment")
        if b2.button("Cancel", key=f"cancel_{entry.id}"):
            dispatch(EditFinished())
            st.rerun(scope="fragment")
        return

    c_points.write(f"{entry.points}")
    b_edit, b_up, b_down, b_copy, b_del = c_actions.columns(5)
    if b_edit.button("✏️", key=f"edit_btn_{entry.id}", help="Edit points"):
        dispatch(EditStarted(entry.id, entry.points))
        st.rerun(scope="fragment")
    if b_up.button("➕", key=f"inc_{entry.id}", help="Add one point"):
        set_state(controller.increment(get_state(), entry.id))
        st.rerun(scope="fragment")
    if b_down.button("➖", key=f"dec_{entry.id}", help="Take one point"):
        set_state(controller.decrement(get_state(), entry.id))
        st.rerun(scope="fragment")
    if games and b_copy.button("📋", key=f"copy_btn_{entry.id}", help="Copy points to other games"):
        dispatch(CopyStarted(entry.id))
        st.rerun(scope="fragment")
    if b_del.button("🗑️", key=f"del_{entry.id}", help="Delete player"):
        set_state(controller.delete(get_state(), entry.id))
        st.rerun(scope="fragment")

    if state.copying_id == entry.id:
        targets = st.multiselect(
            f"Copy {entry.name}'s {entry.points} points to",
            [g for g in games if g != entry.game],
            key=f"copy_targets_{entry.id}",
        )
        b1, b2 = st.columns(2)
        if b1.button("Copy", key=f"copy_{entry.id}", type="primary"):
            set_state(controller.copy_to_games(get_state(), entry.id, targets))
            st.rerun(scope="fragment")
        if b2.button("Cancel", key=f"copy_cancel_{entry.id}"):
            dispatch(CopyFinished())
            st.rerun(scope="fragment")


@st.fragment(run_every=config.REFRESH_SECONDS)
def live_board():
    controller = get_controller()
    state = set_state(controller.sync(get_state()))
    messages()

    view = derive_view(state.entries, state.search, state.sort_key, state.descending, state.game_filter)
    if not view:
        st.info("🏆 No entries yet" if not state.entries else "No players match your search.")
        return

    games = config.games()
    groups = group_by_game(view, games) if games and not state.game_filter else {state.game_filter: view}
    for game, rows in groups.items():
        if len(groups) > 1 or game:
            st.subheader(game or "Other")
        if state.is_admin:
            for rank, entry in enumerate(rows, start=1):
                admin_row(controller, entry, rank)
        else:
            df = to_frame(rows)
            cols = ["rank", "name", "points"]
            st.dataframe(df[cols], use_container_width=True, hide_index=True)

    csv = to_frame(view).drop(columns=["id"]).to_csv(index=False).encode("utf-8")
    st.download_button("Download Leaderboard (CSV)", csv, "leaderboard.csv", "text/csv")


def admin_footer():
    controller = get_controller()
    state = get_state()
    st.divider()
    if state.is_admin:
        if st.button("🔓 Logout Admin"):
            set_state(controller.logout(state))
            st.rerun()
        return

    if not state.show_admin_login:
        if st.button("🔐 Admin Login"):
            dispatch(AdminLoginShown(True))
            st.rerun()
        return

    with st.form("admin_login"):
        code = st.text_input("Admin password", type="password")
        if st.form_submit_button("Login"):
            set_state(controller.login(get_state(), code))
            st.rerun()


def main():
    try:
        get_controller()
    except ConfigurationError as exc:
        st.error(str(exc))
        st.stop()

    st.title(f"🏆 {APP_TITLE.upper()}")
    controls()
    live_board()
    admin_footer()


if __name__ == "__main__":
    main()
