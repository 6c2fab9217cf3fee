"""Release and changelog automation for Rust projects."""
