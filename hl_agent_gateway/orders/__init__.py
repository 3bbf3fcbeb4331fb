"""Order construction, canonical encoding and agent signing pipeline."""
