"""Shared configuration models."""
