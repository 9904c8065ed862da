"""Decision audit trail: AuditRecord and fire-and-forget sinks."""
