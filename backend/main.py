#!/usr/bin/env python
# -*- coding: utf-8 -*-
from backend.core.registrar import register_app

app = register_app()


if __name__ == '__main__':
    import uvicorn

    uvicorn.run('backend.main:app', host='0.0.0.0', port=8000)
