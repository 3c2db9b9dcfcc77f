"""WebDAV protocol layer: path resolution, rendering and verb dispatch."""
