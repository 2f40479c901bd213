import sys

from keepalive_app import main

sys.exit(main())
