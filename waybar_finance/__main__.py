import sys

from waybar_finance.app import main

sys.exit(main())
