"""
Azure provisioning for caasbase: session, idempotent resource resolvers, parameter
assembly and template deployment, run as an ordered pipeline.
"""
