"""Script target for ``streamlit run``; Streamlit executes files outside their package."""

from sheet_tracker.ui_app import main

main()
