"""Service layer — the operations CLI commands call.

Every public service method returns a :class:`~refnet.services.result.ServiceResult`.
"""
