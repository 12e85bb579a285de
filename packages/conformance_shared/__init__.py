"""Shared configuration, logging, and error primitives for the conformance harness."""
