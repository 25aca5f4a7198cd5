"""A minimal HTTP/1.x server with request parsing and response building."""