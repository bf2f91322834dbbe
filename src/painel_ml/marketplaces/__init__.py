"""MercadoLibre API integration: OAuth and REST client."""
