"""Core matching components for StyleMatch."""
