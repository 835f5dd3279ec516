"""Capa de infraestructura: adaptadores de cola, storage y servicios externos."""
