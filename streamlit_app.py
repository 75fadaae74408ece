"""Streamlit entrypoint wiring the schema overview and the question editor."""

import streamlit as st

from Home import EDITOR_PAGE


def main() -> None:
    """Register the app pages and run the selected one."""

    st.set_page_config(page_title="Form builder", page_icon="🧩", layout="wide")
    navigation = st.navigation(
        [
            st.Page("Home.py", title="Schemas", default=True),
            st.Page(EDITOR_PAGE, title="Question editor"),
        ]
    )
    navigation.run()


if __name__ == "__main__":
    main()
