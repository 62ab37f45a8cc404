# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic for the Relations service:
#
#   follow_service   : Follow Store (create / list edges) + follow workflows
#   timeline_service : timeline composition with fan-out to Messages
#
# Service functions accept an AsyncSession as their first argument so that
# the router layer controls the transaction boundary via ``get_db``.
