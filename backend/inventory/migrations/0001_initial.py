import decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Category',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, unique=True, verbose_name='nama kategori')),
            ],
            options={
                'verbose_name': 'Kategori',
                'verbose_name_plural': 'Kategori',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Item',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(db_index=True, max_length=200, verbose_name='nama barang')),
                ('unit_of_measure', models.CharField(default='pcs', help_text='Contoh: pcs, rim, box, unit', max_length=20, verbose_name='satuan')),
                ('barcode', models.CharField(blank=True, max_length=64, null=True, unique=True, verbose_name='kode scan')),
                ('total_stock', models.PositiveIntegerField(default=0, editable=False, verbose_name='stok total')),
                ('minimum_stock', models.PositiveIntegerField(default=10, verbose_name='stok minimum')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='dibuat tanggal')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='diperbarui tanggal')),
                ('category', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='items', to='inventory.category', verbose_name='kategori')),
            ],
            options={
                'verbose_name': 'Barang',
                'verbose_name_plural': 'Barang',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Request',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('request_number', models.CharField(blank=True, editable=False, max_length=50, null=True, unique=True, verbose_name='nomor permintaan')),
                ('status', models.CharField(choices=[('PENDING', 'Menunggu Persetujuan'), ('APPROVED', 'Disetujui'), ('REJECTED', 'Ditolak')], default='PENDING', max_length=20, verbose_name='status')),
                ('notes', models.TextField(blank=True, default='', verbose_name='catatan')),
                ('decided_at', models.DateTimeField(blank=True, null=True, verbose_name='tanggal keputusan')),
                ('rejection_reason', models.TextField(blank=True, default='', verbose_name='alasan penolakan')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='dibuat tanggal')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='diperbarui tanggal')),
                ('decided_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='requests_decided', to=settings.AUTH_USER_MODEL, verbose_name='diputuskan oleh')),
                ('requester', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='requests_made', to=settings.AUTH_USER_MODEL, verbose_name='peminta')),
            ],
            options={
                'verbose_name': 'Permintaan Barang',
                'verbose_name_plural': 'Permintaan Barang',
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='StockBatch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)], verbose_name='jumlah')),
                ('remaining_quantity', models.PositiveIntegerField(verbose_name='sisa jumlah')),
                ('unit_price', models.DecimalField(decimal_places=2, default=decimal.Decimal('0.00'), max_digits=15, validators=[django.core.validators.MinValueValidator(decimal.Decimal('0'))], verbose_name='harga satuan')),
                ('entry_date', models.DateTimeField(default=django.utils.timezone.now, verbose_name='tanggal masuk')),
                ('transaction_type', models.CharField(choices=[('PEMBELIAN', 'Pembelian'), ('HIBAH', 'Hibah'), ('TRANSFER_MASUK', 'Transfer Masuk'), ('SALDO_AWAL', 'Saldo Awal'), ('KOREKSI_TAMBAH', 'Koreksi Tambah'), ('RETURN', 'Pengembalian')], default='PEMBELIAN', max_length=20, verbose_name='jenis transaksi')),
                ('expiry_date', models.DateField(blank=True, null=True, verbose_name='tanggal kadaluarsa')),
                ('notes', models.TextField(blank=True, default='', verbose_name='keterangan')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='dibuat tanggal')),
                ('added_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='added_batches', to=settings.AUTH_USER_MODEL, verbose_name='ditambahkan oleh')),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='batches', to='inventory.item', verbose_name='barang')),
            ],
            options={
                'verbose_name': 'Batch Stok',
                'verbose_name_plural': 'Batch Stok',
                'ordering': ['entry_date', 'id'],
                'indexes': [models.Index(fields=['item', 'entry_date', 'id'], name='stockbatch_fifo_idx')],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('quantity__gt', 0)), name='stockbatch_quantity_positive'),
                    models.CheckConstraint(condition=models.Q(('remaining_quantity__gte', 0)), name='stockbatch_remaining_non_negative'),
                    models.CheckConstraint(condition=models.Q(('remaining_quantity__lte', models.F('quantity'))), name='stockbatch_remaining_lte_quantity'),
                    models.CheckConstraint(condition=models.Q(('unit_price__gte', 0)), name='stockbatch_unit_price_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='RequestItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity_requested', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)], verbose_name='jumlah diminta')),
                ('quantity_approved', models.PositiveIntegerField(default=0, verbose_name='jumlah disetujui')),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='requested_in', to='inventory.item', verbose_name='barang')),
                ('request', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='inventory.request', verbose_name='permintaan')),
            ],
            options={
                'verbose_name': 'Item Permintaan',
                'verbose_name_plural': 'Item Permintaan',
                'ordering': ['id'],
                'constraints': [
                    models.UniqueConstraint(fields=('request', 'item'), name='requestitem_unique_item_per_request'),
                    models.CheckConstraint(condition=models.Q(('quantity_requested__gt', 0)), name='requestitem_requested_positive'),
                    models.CheckConstraint(condition=models.Q(('quantity_approved__lte', models.F('quantity_requested'))), name='requestitem_approved_lte_requested'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Transaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.IntegerField(help_text='Positif untuk IN/RETURN, negatif untuk OUT', verbose_name='jumlah')),
                ('transaction_type', models.CharField(choices=[('IN', 'Masuk'), ('OUT', 'Keluar'), ('RETURN', 'Pengembalian')], max_length=10, verbose_name='tipe transaksi')),
                ('timestamp', models.DateTimeField(default=django.utils.timezone.now, verbose_name='waktu transaksi')),
                ('notes', models.TextField(blank=True, default='', verbose_name='catatan')),
                ('batch', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='transactions', to='inventory.stockbatch', verbose_name='batch terkait')),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='transactions', to='inventory.item', verbose_name='barang')),
                ('related_request', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='transactions', to='inventory.request', verbose_name='permintaan terkait')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL, verbose_name='pengguna')),
            ],
            options={
                'verbose_name': 'Transaksi Stok',
                'verbose_name_plural': 'Transaksi Stok',
                'ordering': ['-timestamp', '-id'],
            },
        ),
        migrations.CreateModel(
            name='ActivityLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(max_length=30, verbose_name='aksi')),
                ('entity', models.CharField(max_length=30, verbose_name='entitas')),
                ('entity_id', models.CharField(blank=True, default='', max_length=64, verbose_name='id entitas')),
                ('description', models.TextField(verbose_name='deskripsi')),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True, verbose_name='alamat IP')),
                ('user_agent', models.CharField(blank=True, default='', max_length=255, verbose_name='user agent')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='waktu')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL, verbose_name='pengguna')),
            ],
            options={
                'verbose_name': 'Log Aktivitas',
                'verbose_name_plural': 'Log Aktivitas',
                'ordering': ['-created_at', '-id'],
            },
        ),
    ]
