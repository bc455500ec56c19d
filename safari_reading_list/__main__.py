import sys

from safari_reading_list.main import main

sys.exit(main())
