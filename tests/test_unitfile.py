"""Tests for unit file parsing and rendering."""

from unitd.local.units.unitfile import (UnitDefinition, parse_sections, parse_unit_text,
                                        render_unit_text, unit_file_name, unit_key)


def test_parse_sections_is_tolerant():
    text = """
# leading comment
orphan=before any section
[Unit]
Description = My service
; another comment
this line has no equals sign

[Service]
ExecStart=/usr/bin/env FOO=bar app --flag
ExecStart=/bin/last
[X-Custom]
Answer=42
"""
    sections = parse_sections(text)

    assert list(sections) == ["Unit", "Service", "X-Custom"]
    assert sections["Unit"] == {"Description": "My service"}
    # Repeated keys keep the last value; '=' inside a value is preserved
    assert sections["Service"] == {"ExecStart": "/bin/last"}
    assert sections["X-Custom"] == {"Answer": "42"}


def test_parse_sections_requires_exact_headers():
    sections = parse_sections("[Unit\nDescription=x\n[Service]\nType=simple\n")
    assert "Unit" not in sections
    assert sections == {"Service": {"Type": "simple"}}


def test_parse_unit_text_reads_typed_fields():
    text = (
        "[Unit]\nDescription=Web app\n"
        "[Service]\nType=oneshot\nExecStart=/srv/web --port 80\n"
        "WorkingDirectory=/srv\nRestart=always\nRestartSec=12\nUser=nobody\n"
    )
    definition = parse_unit_text("webapp", text)

    assert definition.name == "webapp"
    assert definition.description == "Web app"
    assert definition.exec_start == "/srv/web --port 80"
    assert definition.working_directory == "/srv"
    assert definition.restart == "always"
    assert definition.restart_sec == 12
    assert definition.type == "oneshot"
    # Unknown keys are kept but unused
    assert definition.sections["Service"]["User"] == "nobody"
    assert definition.is_runnable


def test_parse_unit_text_keys_are_case_insensitive():
    definition = parse_unit_text("svc", "[service]\nexecstart=/bin/app\n")
    assert definition.exec_start == "/bin/app"


def test_invalid_values_fall_back_to_defaults(caplog):
    text = "[Service]\nRestart=sometimes\nRestartSec=-3\nType=notify\n"
    definition = parse_unit_text("svc", text)

    assert definition.restart == "on-failure"
    assert definition.restart_sec == 5
    assert definition.type == "simple"
    assert not definition.is_runnable
    assert "unsupported Restart" in caplog.text


def test_non_numeric_restart_sec_uses_default():
    definition = parse_unit_text("svc", "[Service]\nRestartSec=soon\n")
    assert definition.restart_sec == 5


def test_render_then_parse_keeps_fields():
    original = UnitDefinition(
        name="api",
        description="API server",
        exec_start='"/opt/my app/api" --debug',
        working_directory="/opt/my app",
        restart="no",
        restart_sec=0,
        type="forking",
    )
    parsed = parse_unit_text("api", render_unit_text(original))

    assert parsed.description == original.description
    assert parsed.exec_start == original.exec_start
    assert parsed.working_directory == original.working_directory
    assert parsed.restart == original.restart
    assert parsed.restart_sec == original.restart_sec
    assert parsed.type == original.type


def test_unit_key_and_file_name():
    assert unit_key("WebApp.service") == "webapp"
    assert unit_key(" webapp ") == "webapp"
    assert unit_key("Asionyx.Services.Deployment") == "asionyx.services.deployment"
    assert unit_file_name("webapp") == "webapp.service"
    assert unit_file_name("webapp.SERVICE") == "webapp.SERVICE"
