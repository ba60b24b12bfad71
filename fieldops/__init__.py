"""FieldOps dispatch core - quotes, jobs and technician matching for field-service contractors"""
