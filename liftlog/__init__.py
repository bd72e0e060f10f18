"""Liftlog Analytics — strength-training analytics engine."""
