"""
Graph services layer.

- token_manager: client-credentials tokens, cached per (tenant, client)
- graph_reader: folder and message operations for one mailbox
- graph_sender: sendMail payload building and posting
- mime_parser: best-effort field extraction from raw MIME
"""
