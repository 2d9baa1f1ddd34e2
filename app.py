import streamlit as st

# Define pages
home = st.Page("pages/Marksheet_Extraction.py", icon='📝')

decisions = st.Page("pages/Extraction_Decisions.py", icon='🧪')  # How sheets are checked


# Group pages
pg = st.navigation({
    "Extraction": [home],
    "Analysis": [decisions],
})

# Run the navigation
pg.run()
