"""Tests for study-tracker."""
