import sys

from kafkaspectre.cli import main

sys.exit(main())
