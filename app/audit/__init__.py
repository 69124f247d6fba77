"""
Audit app.

Append-only audit trail for mutations of protected entities (payment
accounts, orders, remittances). Entries are written in the same
transaction as the mutation they describe and can never be changed.

Usage:
    from audit.services import AuditTrail
    from audit.models import AuditAction

    AuditTrail.record(
        action=AuditAction.UPDATE,
        entity_table="orders",
        entity_id=order.id,
        actor=request.user,
        prior_state={"status": "pending"},
        post_state={"status": "processing"},
    )
"""
