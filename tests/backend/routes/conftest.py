import pytest

ROUTE_MODULES = (
    'backend.routes.admin_routes',
    'backend.routes.appointment_routes',
    'backend.routes.doctor_panel_routes',
    'backend.routes.doctor_routes',
    'backend.routes.user_routes',
)


@pytest.fixture(autouse=True)
def skip_schema_checks(monkeypatch: pytest.MonkeyPatch) -> None:
    for module in ROUTE_MODULES:
        monkeypatch.setattr(f'{module}.ensure_database_ready', lambda: None)
