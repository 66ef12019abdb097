"""
Smoke tests to verify all modules can be imported.
"""

def test_import_nexus_core():
    import nexus_core
    assert hasattr(nexus_core, '__version__')


def test_import_llm():
    import llm
    assert hasattr(llm, '__version__')


def test_import_engine():
    import engine
    assert hasattr(engine, '__version__')


def test_import_ui():
    import ui
    assert hasattr(ui, '__version__')


def test_ui_views_import_without_streamlit_runtime():
    from ui import views
    assert callable(views.build_summary)
