"""Cross-cutting helpers (telemetry, time, ids, locks); no provisioning logic here."""
