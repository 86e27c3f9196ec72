"""Audio layer: Kokoro synthesis client, on-disk cache, clipped playback."""
