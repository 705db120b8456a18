#!/usr/bin/env python3

import argparse
import binascii
import logging
import os
import sys

import opeproto.cipher
import opeproto.errors


def positive_int(value):
    """Parse a strictly positive integer."""
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError(
            "expected a positive integer, got %d" % n)
    return n


def parse_key(value):
    """Parse a hex-encoded key."""
    try:
        return binascii.unhexlify(value)
    except (binascii.Error, ValueError):
        raise argparse.ArgumentTypeError("key must be a hex string")


def build_parser():
    parser = argparse.ArgumentParser(
        description="Order-preserving encryption of bounded integers.")

    parser.add_argument(
        'operation',
        help="Whether to encrypt or decrypt the values.",
        nargs='?')

    parser.add_argument(
        'values',
        type=int,
        help="The integers to process.",
        nargs='*')

    parser.add_argument(
        '-k', '--key',
        type=parse_key,
        help="The hex-encoded secret key (default: $OPE_KEY).")

    parser.add_argument(
        '-i', '--in-range',
        type=int,
        nargs=2,
        metavar=('START', 'END'),
        help="The plaintext range, inclusive.")

    parser.add_argument(
        '-o', '--out-range',
        type=int,
        nargs=2,
        metavar=('START', 'END'),
        help="The ciphertext range, inclusive.")

    parser.add_argument(
        '-c', '--config',
        help="A JSON range configuration exported by Cipher.to_json().")

    parser.add_argument(
        '-u', '--unkeyed',
        help="Derive coins from node values only, ignoring the key.",
        action='store_true')

    parser.add_argument(
        '-g', '--genkey',
        type=positive_int,
        nargs='?',
        const=32,
        metavar='BYTES',
        help="Print a fresh random hex key of BYTES bytes and exit.")

    parser.add_argument(
        '-v', '--verbose',
        help="Log debugging output.",
        action='store_true')

    return parser


def make_cipher(args, key):
    if args.config is not None:
        with open(args.config) as f:
            cipher = opeproto.cipher.Cipher.from_json(key, f.read())
        in_range = cipher.in_range
        out_range = cipher.out_range
        keyed = cipher.keyed
    else:
        in_range = None
        out_range = None
        keyed = True

    if args.in_range is not None:
        in_range = opeproto.cipher.ValueRange(*args.in_range)
    if args.out_range is not None:
        out_range = opeproto.cipher.ValueRange(*args.out_range)
    if args.unkeyed:
        keyed = False

    return opeproto.cipher.Cipher(key, in_range, out_range, keyed=keyed)


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s')

    if args.genkey is not None:
        key = opeproto.cipher.Cipher.generate_key(args.genkey)
        print(binascii.hexlify(key).decode('ascii'))
        return 0

    if args.operation not in ('encrypt', 'decrypt'):
        parser.error("operation must be 'encrypt' or 'decrypt'")

    key = args.key
    if key is None:
        env_key = os.environ.get('OPE_KEY')
        if env_key is None:
            parser.error("no key given; use --key or set OPE_KEY")
        try:
            key = parse_key(env_key)
        except argparse.ArgumentTypeError as e:
            parser.error("OPE_KEY: %s" % e)

    try:
        cipher = make_cipher(args, key)
        if args.operation == 'encrypt':
            results = [cipher.encrypt(v) for v in args.values]
        else:
            results = [cipher.decrypt(v) for v in args.values]
    except opeproto.errors.OPEError as e:
        sys.stderr.write('%s: %s\n' % (type(e).__name__, e))
        return 1

    for value in results:
        print(value)
    return 0


if __name__ == '__main__':
    sys.exit(main())
