import sys

from pulsar_producer.cli import main

sys.exit(main())
