"""
Service layer.

``exchange_store`` owns the database rows; ``exchange_service``
implements the exchange protocol on top of it.
"""
