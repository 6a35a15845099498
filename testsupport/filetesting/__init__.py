"""Call-recording stubs for files, readers, writers and hashes."""