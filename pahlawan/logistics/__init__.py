"""Delivery orders, batches and service levels."""