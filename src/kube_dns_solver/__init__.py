"""ACME DNS-01 webhook solver backed by Kubernetes ``Record`` resources."""
