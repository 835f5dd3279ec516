"""
===============================================================================
APPLICATION LAYER (Public API / Exports)
===============================================================================

Casos de uso del pipeline de jobs. Orquestan puertos del dominio
(JobStatusStore, JobQueue, Transcoder) sin conocer Redis ni Postgres.

Nota:
  - Los casos de uso se importan desde `usecases/`.
===============================================================================
"""
