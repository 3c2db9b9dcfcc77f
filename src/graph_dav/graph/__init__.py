"""Microsoft Graph drive access: token cache, transport, item model and store."""
