"""
Reject UPDATE and DELETE on audit_log_entries at the database level.

The trigger applies to every role, including the application's own
connection and superusers running ad hoc SQL. Other backends (SQLite in
local test runs) rely on the model and queryset guards.
"""

from django.db import migrations

CREATE_TRIGGER_SQL = """
CREATE OR REPLACE FUNCTION audit_log_entries_reject_change()
RETURNS trigger AS $$
BEGIN
    RAISE EXCEPTION 'audit_log_entries is append-only: % rejected', TG_OP
        USING ERRCODE = 'insufficient_privilege';
END;
$$ LANGUAGE plpgsql;

CREATE TRIGGER audit_log_entries_append_only
    BEFORE UPDATE OR DELETE ON audit_log_entries
    FOR EACH ROW EXECUTE FUNCTION audit_log_entries_reject_change();
"""

DROP_TRIGGER_SQL = """
DROP TRIGGER IF EXISTS audit_log_entries_append_only ON audit_log_entries;
DROP FUNCTION IF EXISTS audit_log_entries_reject_change();
"""


def create_trigger(apps, schema_editor):
    if schema_editor.connection.vendor != "postgresql":
        return
    schema_editor.execute(CREATE_TRIGGER_SQL)


def drop_trigger(apps, schema_editor):
    if schema_editor.connection.vendor != "postgresql":
        return
    schema_editor.execute(DROP_TRIGGER_SQL)


class Migration(migrations.Migration):
    dependencies = [
        ("audit", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(create_trigger, drop_trigger),
    ]
