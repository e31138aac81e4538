# This file is part of the TileArchive project.
# Copyright (C) 2026 TileArchive contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import logging
import sys
from logging.config import fileConfig
from optparse import OptionParser, OptionValueError

from tilearchive.cache.base import StorageError
from tilearchive.cache.mbtiles import MBTilesArchive
from tilearchive.client.http import HTTPClient
from tilearchive.config.loader import load_configuration, ConfigurationError
from tilearchive.coords import CoordinateError
from tilearchive.grid import Grid, GridError
from tilearchive.metadata import Metadata, MetadataError
from tilearchive.seed.seeder import ArchiveWriter
from tilearchive.seed.util import ProgressLog, format_archive_task
from tilearchive.version import version


def setup_logging(logging_conf=None):
    if logging_conf is not None:
        fileConfig(logging_conf, {'here': './'})

    tilearchive_log = logging.getLogger('tilearchive')
    tilearchive_log.setLevel(logging.WARN)

    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(logging.DEBUG)
    formatter = logging.Formatter(
        "[%(asctime)s] %(name)s - %(levelname)s - %(message)s")
    ch.setFormatter(formatter)
    tilearchive_log.addHandler(ch)


def parse_numbers(option, opt, value, parser):
    try:
        numbers = [float(v) for v in value.split(',')]
    except ValueError:
        raise OptionValueError(
            "option %s: invalid value: %r, expected comma separated numbers" % (opt, value))
    setattr(parser.values, option.dest, numbers)


class SeedScript(object):
    usage = "usage: %prog [options] --config archive.yaml OUTPUT.mbtiles"
    parser = OptionParser(usage, version='%prog ' + version)
    parser.add_option("-q", "--quiet",
                      action="count", dest="quiet", default=0,
                      help="reduce number of messages to stdout, repeat to disable progress output")
    parser.add_option("--config",
                      dest="config_file", default=None,
                      help="archive configuration (required)")
    parser.add_option("--name", dest="name", help="name of the archive")
    parser.add_option("--description", dest="description", help="description of the archive")
    parser.add_option("--attribution", dest="attribution", help="attribution of the archive")
    parser.add_option("--bounds", dest="bounds", metavar="MINLNG,MINLAT,MAXLNG,MAXLAT",
                      type=str, action="callback", callback=parse_numbers,
                      help="bounds of the archive")
    parser.add_option("--center", dest="center", metavar="LNG,LAT[,ZOOM]",
                      type=str, action="callback", callback=parse_numbers,
                      help="center of the archive")
    parser.add_option("--min-zoom", dest="min_zoom", type="int", help="minimum zoom level")
    parser.add_option("--max-zoom", dest="max_zoom", type="int", help="maximum zoom level")
    parser.add_option("--format", dest="format", help="tile image format [png/jpg]")
    parser.add_option("--type", dest="type", help="type of the archive [baselayer/overlay]")
    parser.add_option("--scheme", dest="scheme", metavar="URL",
                      help="tile URL template, e.g. http://{switch:a,b}.example.org/{z}/{x}/{y}.png")
    parser.add_option("-c", "--concurrency", type="int",
                      dest="concurrency", default=None,
                      help="number of parallel downloads")
    parser.add_option("--batch-size", type="int",
                      dest="batch_size", default=None,
                      help="number of tiles per batch")
    parser.add_option("--summary",
                      action="store_true", dest="summary", default=False,
                      help="print the archive task and exit. does not download anything.")
    parser.add_option("--log-config", "--logging-conf", dest='logging_conf', default=None,
                      help="logging configuration")

    override_options = ('name', 'description', 'attribution', 'bounds', 'center',
                        'min_zoom', 'max_zoom', 'format', 'type', 'scheme',
                        'concurrency', 'batch_size')

    def __call__(self, argv=None):
        (options, args) = self.parser.parse_args(argv)

        if len(args) != 1:
            self.parser.print_help()
            return 2

        if not options.config_file:
            self.parser.error('missing archive configuration --config')

        setup_logging(options.logging_conf)

        overrides = dict((name, getattr(options, name)) for name in self.override_options)
        try:
            conf = load_configuration(options.config_file, overrides=overrides)
            metadata = Metadata.from_config(conf)
            metadata.validate()
            grid = Grid(conf.bounds, conf.min_zoom, conf.max_zoom, conf.scheme)
        except ConfigurationError as ex:
            print("ERROR: " + '\n\t'.join(str(ex).split('\n')))
            return 2
        except (CoordinateError, GridError, MetadataError) as ex:
            print("error in configuration: %s" % (ex, ))
            return 2

        print(format_archive_task(metadata, grid, args[0]))
        if options.summary:
            return 0

        if not sys.stdout.isatty() and options.quiet == 0:
            # disable verbose output for non-ttys
            options.quiet = 1

        progress = ProgressLog(verbose=options.quiet == 0, silent=options.quiet >= 2)
        archive = MBTilesArchive(args[0])
        http_client = HTTPClient(conf.scheme, timeout=conf.timeout,
                                 headers=conf.headers, user_agent=conf.user_agent)
        writer = ArchiveWriter(archive, http_client,
                               concurrency=conf.concurrency, batch_size=conf.batch_size,
                               retries=conf.retries, retry_delay=conf.retry_delay,
                               timeout=conf.timeout, progress_logger=progress)
        try:
            result = writer.save(metadata)
        except StorageError as ex:
            print("ERROR: unable to write archive %s: %s" % (args[0], ex))
            return 3
        except KeyboardInterrupt:
            print('\nexiting...')
            return 3
        finally:
            archive.cleanup()
            http_client.close()

        print('%d tiles downloaded, %d skipped, %d failed' % (
            result.downloaded, result.skipped, result.failed))
        if not result.ok:
            return 1
        return 0


def main(argv=None):
    return SeedScript()(argv)


if __name__ == '__main__':
    sys.exit(main())
