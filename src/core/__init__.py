"""Core: dominio, contratos, servicios y configuración."""
