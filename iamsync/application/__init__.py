"""Application layer: ports, DTOs and the provisioning/correlation services."""
