"""
UI service - Streamlit screens for the console.
"""
