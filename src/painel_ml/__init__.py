"""
Painel ML - seller operations backend for MercadoLibre accounts.

Connects merchant accounts over OAuth, ingests marketplace webhooks through a
queue and keeps items, orders, shipments, questions, messages and billing
records synchronized for the dashboard API.
"""

__version__ = "1.0.0"
