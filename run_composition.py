#!/usr/bin/env python3
"""
Main CLI entrypoint for the scene composer.

This is a convenience wrapper that imports and runs the composition CLI.
"""

import sys

from scene_composer.pipelines.run_composition import main

if __name__ == "__main__":
    sys.exit(main())
